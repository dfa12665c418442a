"""Analyze a folder of receipts against a running Leitor de Docs server.

Environment:
    LEITORDOCS_URL          Server base URL (default http://localhost:8000)
    LEITORDOCS_TOKEN        Supabase access token of the operator
    LEITORDOCS_COMPANY      Company id (default enia-marcia-joias)
    LEITORDOCS_PROVIDER     AI provider (default gemini)
    LEITORDOCS_TYPE         Analysis type (default financial-receipt)
    LEITORDOCS_PARTIAL      "1" to analyze only what the credits pay for
    LEITORDOCS_ZIP          Optional path of a ZIP with the renamed files

Usage:
    python scripts/analyze_batch.py ./comprovantes
"""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from leitordocs.domain.batch import BatchAnalyzer, BatchFile
from leitordocs.infrastructure.document.uploads import is_supported_mime_type
from leitordocs.shared.exceptions import InsufficientCreditsError
from leitordocs.shared.logging import setup_logging


def _collect_files(folder: Path) -> list[BatchFile]:
    files = [BatchFile.from_path(p) for p in sorted(folder.iterdir()) if p.is_file()]
    return [f for f in files if is_supported_mime_type(f.mime_type)]


def _print_progress(processed: int, total: int) -> None:
    print(f"[{processed}/{total}]", flush=True)


async def _run(folder: Path) -> int:
    files = _collect_files(folder)
    if not files:
        print(f"Nenhuma imagem ou PDF em {folder}")
        return 1

    token = os.getenv("LEITORDOCS_TOKEN", "")
    if not token:
        print("LEITORDOCS_TOKEN não definido")
        return 2

    async with BatchAnalyzer(
        os.getenv("LEITORDOCS_URL", "http://localhost:8000"),
        token,
        on_progress=_print_progress,
    ) as analyzer:
        try:
            report = await analyzer.run(
                files,
                company=os.getenv("LEITORDOCS_COMPANY", "enia-marcia-joias"),
                provider=os.getenv("LEITORDOCS_PROVIDER", "gemini"),
                analysis_type=os.getenv("LEITORDOCS_TYPE", "financial-receipt"),
                allow_partial=os.getenv("LEITORDOCS_PARTIAL") == "1",
            )
        except InsufficientCreditsError as e:
            remaining = e.details.get("credits_remaining")
            print(f"Créditos insuficientes: {remaining} restantes para {len(files)} arquivo(s)")
            return 3

    for item in report.results:
        status = item.result if item.succeeded else f"ERRO: {item.error}"
        print(f"{item.file_name} -> {status}")
    print(report.message)

    zip_path = os.getenv("LEITORDOCS_ZIP")
    if zip_path and report.successes:
        Path(zip_path).write_bytes(report.build_renamed_archive(files))
        print(f"ZIP salvo em {zip_path}")

    return 0 if report.all_succeeded else 4


def main() -> None:
    if len(sys.argv) != 2:
        print(__doc__)
        raise SystemExit(1)
    setup_logging()
    raise SystemExit(asyncio.run(_run(Path(sys.argv[1]))))


if __name__ == "__main__":
    main()
