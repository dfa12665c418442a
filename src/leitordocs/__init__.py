"""Leitor de Docs - AI document reading backend for BPO operators."""

__version__ = "1.4.0"
