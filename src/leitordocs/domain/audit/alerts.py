"""Quality alerts for AI extraction results.

The alerts are for operator visibility only. Nothing here blocks an analysis:
the dashboard shows them next to the document so a human can double check.
"""

import json
import math
from collections.abc import Mapping
from typing import Any

EMPTY_RESPONSE_ALERT = "Resposta da IA vazia"
RAW_TEXT_NOT_FOUND_ALERT = "Contém campos não encontrados (ND)"
SHORT_RESPONSE_ALERT = "Resposta suspeitosamente curta"
LOW_QUALITY_ALERT = "IA detectou imagem de baixa qualidade/ilegível"
UNCERTAINTY_ALERT = "IA expressou incerteza sobre os dados extraídos"

SHORT_RESPONSE_LENGTH = 10

NOT_FOUND_MARKERS = frozenset({"ND", "N/D", "Não encontrado"})
AMOUNT_KEY_MARKERS = ("valor", "total")
ZERO_STRINGS = frozenset({"0", "0,00", "0.00"})

LOW_QUALITY_PHRASES = ("borrada", "ilegível", "baixa qualidade")
UNCERTAINTY_PHRASES = ("incerto", "provável", "possível erro")


def field_not_found_alert(key: str) -> str:
    return f'Campo "{key}" não encontrado'


def zero_amount_alert(key: str) -> str:
    return f'Campo "{key}" está com valor zero'


def _is_zero_amount(value: Any) -> bool:
    # bool is an int subclass; False is not an amount
    if isinstance(value, bool):
        return False
    if isinstance(value, (int, float)):
        return value == 0
    return isinstance(value, str) and value in ZERO_STRINGS


def _is_empty_reply(analysis: Any) -> bool:
    # Empty containers are still a reply; only blank scalars count as empty
    if analysis is None or analysis is False or analysis == "":
        return True
    if isinstance(analysis, (int, float)) and not isinstance(analysis, bool):
        return analysis == 0 or math.isnan(analysis)
    return False


def _check_fields(obj: Mapping[Any, Any], alerts: list[str]) -> None:
    for raw_key, value in obj.items():
        key = str(raw_key)

        if isinstance(value, str) and value in NOT_FOUND_MARKERS:
            alerts.append(field_not_found_alert(key))

        lowered = key.lower()
        if any(marker in lowered for marker in AMOUNT_KEY_MARKERS) and _is_zero_amount(value):
            alerts.append(zero_amount_alert(key))

        # Only nested objects are walked; lists are leaf values.
        if isinstance(value, Mapping):
            _check_fields(value, alerts)


def _check_phrases(analysis: Any, alerts: list[str]) -> None:
    text = json.dumps(analysis, ensure_ascii=False, default=str).lower()

    if any(phrase in text for phrase in LOW_QUALITY_PHRASES):
        alerts.append(LOW_QUALITY_ALERT)

    if any(phrase in text for phrase in UNCERTAINTY_PHRASES):
        alerts.append(UNCERTAINTY_ALERT)


def detect_alerts(analysis: Any) -> list[str]:
    """Scan an AI extraction result for missing, zeroed or low-confidence data.

    Args:
        analysis: Parsed JSON object returned by the provider, or the raw text
            when the provider did not return structured output.

    Returns:
        Alert messages without duplicates, field alerts first. An empty list
        means nothing suspicious was found.
    """
    if _is_empty_reply(analysis):
        return [EMPTY_RESPONSE_ALERT]

    alerts: list[str] = []

    # Some providers fall back to plain text when JSON output fails
    if isinstance(analysis, str):
        if "ND" in analysis:
            alerts.append(RAW_TEXT_NOT_FOUND_ALERT)
        if len(analysis) < SHORT_RESPONSE_LENGTH:
            alerts.append(SHORT_RESPONSE_ALERT)
        return alerts

    if isinstance(analysis, Mapping):
        _check_fields(analysis, alerts)

    _check_phrases(analysis, alerts)

    return list(dict.fromkeys(alerts))
