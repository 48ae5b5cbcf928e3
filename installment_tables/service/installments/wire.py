"""
Plan Wire Codec for the installment table engine.

The plans API takes `application/x-www-form-urlencoded` bodies with
bracket-indexed keys and expects several fields twice: once flat and once
mirrored under `config[...]`. The mirror of a row's value (and of the
plan total) is display-masked ("R$ 400,00") while the flat copy is
canonical ("400.00"). The API relies on both shapes, so the encoder emits
them from one place.

Wire layout (in emission order):

    id                                   only for a persisted plan
    id_curso, nome, valor, ativo, tipo_curso, obs
    atualizado                           only when known
    config[valor]                        total, display-masked
    config[tipo_curso]
    previsao_turma[]                     one per class id, each followed by
    config[previsao_turma][]             its mirror
    parcelas[i][parcela|tipo_entrada|entrada|juros|valor|desconto]
    config[parcelas][i][...]             same row, value display-masked
    config[tx2][n][name_label|name_valor]

Decoding accepts either the JSON record returned by the API or the parsed
form payload, preferring top-level fields and falling back to `config`.
"""

import json
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
from urllib.parse import parse_qsl, urlencode

import structlog

from installment_tables.domain.entities import (
    ActiveStatus,
    InstallmentPlan,
    ParcelOption,
    TermEntry,
)

from .money import format_money, remove_mask
from .per_installment import parse_installment_count
from .settings import EngineSettings, engine_settings

logger = structlog.get_logger(__name__)

WirePairs = List[Tuple[str, str]]

# ParcelOption attribute -> wire field name
ROW_FIELDS = (
    ("installment_count", "parcela"),
    ("entry_type", "tipo_entrada"),
    ("entry_value", "entrada"),
    ("interest", "juros"),
    ("value", "valor"),
    ("discount", "desconto"),
)

TERM_LABEL = "name_label"
TERM_TEXT = "name_valor"

_KEY = re.compile(r"^([^\[\]]+)((?:\[[^\[\]]*\])*)$")
_SEGMENT = re.compile(r"\[([^\[\]]*)\]")


# =============================================================================
# Encoding
# =============================================================================

def _row_wire_values(option: ParcelOption, masked: bool, settings: EngineSettings) -> List[str]:
    count = "" if option.installment_count is None else str(option.installment_count)
    if masked:
        value = format_money(option.value, settings=settings) if option.value else ""
    else:
        value = remove_mask(option.value) if option.value else ""
    discount = remove_mask(option.discount) if option.discount else ""
    return [count, option.entry_type, option.entry_value, option.interest, value, discount]


def encode(
    plan: InstallmentPlan,
    settings: EngineSettings = engine_settings,
) -> WirePairs:
    """
    Flatten a plan into ordered form pairs.

    Args:
        plan: The plan to send
        settings: Engine settings (locale/currency for the masked mirrors)

    Returns:
        List of (key, value) pairs; keys repeat for class ids
    """
    pairs: WirePairs = []

    if plan.id:
        pairs.append(("id", str(plan.id)))
    pairs.append(("id_curso", plan.course_id))
    pairs.append(("nome", plan.name))
    pairs.append(("valor", remove_mask(plan.total_value)))
    pairs.append(("ativo", plan.active.value))
    pairs.append(("tipo_curso", plan.legacy_course_type))
    pairs.append(("obs", plan.note))
    if plan.updated_at:
        pairs.append(("atualizado", plan.updated_at))

    pairs.append(("config[valor]", format_money(plan.total_value, settings=settings)))
    pairs.append(("config[tipo_curso]", plan.legacy_course_type))

    for class_id in plan.class_scope:
        pairs.append(("previsao_turma[]", class_id))
        pairs.append(("config[previsao_turma][]", class_id))

    wire_names = [name for _, name in ROW_FIELDS]
    for option in plan.options:
        i = option.index
        flat = _row_wire_values(option, masked=False, settings=settings)
        mirror = _row_wire_values(option, masked=True, settings=settings)
        for name, value in zip(wire_names, flat):
            pairs.append((f"parcelas[{i}][{name}]", value))
        for name, value in zip(wire_names, mirror):
            pairs.append((f"config[parcelas][{i}][{name}]", value))

    for n, term in enumerate(plan.terms):
        pairs.append((f"config[tx2][{n}][{TERM_LABEL}]", term.label))
        pairs.append((f"config[tx2][{n}][{TERM_TEXT}]", term.text))

    return pairs


def to_urlencoded(pairs: Iterable[Tuple[str, str]]) -> str:
    """Serialize form pairs as an urlencoded body (spaces become "+")."""
    return urlencode(list(pairs))


# =============================================================================
# Parsing (form body -> nested record)
# =============================================================================

def _assign(root: Dict[str, Any], segments: List[str], value: str) -> None:
    if segments[-1] == "" and len(segments) > 1:
        parents, leaf, append = segments[:-2], segments[-2], True
    else:
        parents, leaf, append = segments[:-1], segments[-1], False

    node = root
    for seg in parents:
        child = node.get(seg)
        if not isinstance(child, dict):
            child = {}
            node[seg] = child
        node = child

    if append:
        bucket = node.get(leaf)
        if not isinstance(bucket, list):
            bucket = []
            node[leaf] = bucket
        bucket.append(value)
    else:
        node[leaf] = value


def parse_wire(pairs: Iterable[Tuple[str, str]]) -> Dict[str, Any]:
    """
    Rebuild the nested record from bracketed form keys.

    "parcelas[3][valor]" becomes {"parcelas": {"3": {"valor": ...}}} and
    "previsao_turma[]" collects a list. Later duplicates of a scalar key win.
    """
    out: Dict[str, Any] = {}
    for key, value in pairs:
        match = _KEY.match(key)
        if not match:
            out[key] = value
            continue
        head, rest = match.groups()
        _assign(out, [head, *_SEGMENT.findall(rest)], value)
    return out


def parse_urlencoded(body: str) -> Dict[str, Any]:
    """Parse an urlencoded body ("+" read as space) into a nested record."""
    return parse_wire(parse_qsl(body, keep_blank_values=True))


# =============================================================================
# Decoding (record -> plan)
# =============================================================================

def _text(value) -> str:
    if value is None:
        return ""
    return str(value)


def _as_mapping(raw) -> Dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    if isinstance(raw, str) and raw.strip():
        try:
            decoded = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("plan_config_unreadable", length=len(raw))
            return {}
        return decoded if isinstance(decoded, dict) else {}
    return {}


def _first_present(*candidates):
    """First candidate that is not None/empty (strings, lists and dicts)."""
    for candidate in candidates:
        if candidate is None:
            continue
        if isinstance(candidate, (str, list, tuple, dict)) and not candidate:
            continue
        return candidate
    return None


def _indexed_items(raw) -> List[Tuple[Optional[int], Any]]:
    """Normalize a list or an index-keyed mapping into (index, item) pairs."""
    if isinstance(raw, Mapping):
        items = []
        for key, item in raw.items():
            try:
                items.append((int(str(key)), item))
            except ValueError:
                items.append((None, item))
        return items
    if isinstance(raw, (list, tuple)):
        return [(None, item) for item in raw]
    return []


def _class_ids(raw) -> Tuple[str, ...]:
    if isinstance(raw, Mapping):
        raw = list(raw.values())
    elif isinstance(raw, (str, int)):
        raw = [raw]
    if not isinstance(raw, (list, tuple)):
        return ()
    ids: List[str] = []
    for value in raw:
        class_id = _text(value).strip()
        if class_id and class_id not in ids:
            ids.append(class_id)
    return tuple(ids)


def _rows(raw) -> List[ParcelOption]:
    options: List[ParcelOption] = []
    seen = set()
    for position, (key_index, item) in enumerate(_indexed_items(raw), start=1):
        if not isinstance(item, Mapping):
            continue
        index = key_index
        if index is None:
            index = parse_installment_count(item.get("index")) or position
        if index < 1 or index in seen:
            logger.warning("plan_row_skipped", index=index, reason="invalid_or_duplicate_index")
            continue
        seen.add(index)
        options.append(
            ParcelOption(
                index=index,
                installment_count=parse_installment_count(item.get("parcela")),
                entry_type=_text(item.get("tipo_entrada")),
                entry_value=_text(item.get("entrada")),
                interest=_text(item.get("juros")),
                value=remove_mask(item.get("valor")),
                discount=remove_mask(item.get("desconto")),
            )
        )
    return options


def _terms(raw) -> List[TermEntry]:
    items = _indexed_items(raw)
    if isinstance(raw, Mapping):
        items.sort(key=lambda pair: (pair[0] is None, pair[0] or 0))
    return [
        TermEntry(label=_text(item.get(TERM_LABEL)), text=_text(item.get(TERM_TEXT)))
        for _, item in items
        if isinstance(item, Mapping)
    ]


def default_option(settings: EngineSettings = engine_settings) -> ParcelOption:
    """The row a plan starts with: slot 1, default installment count."""
    return ParcelOption(index=1, installment_count=settings.default_installment_count)


def decode(
    record: Mapping[str, Any],
    settings: EngineSettings = engine_settings,
) -> InstallmentPlan:
    """
    Hydrate a plan from a persisted record or a parsed form payload.

    Top-level `parcelas`, `previsao_turma` (or `previsao_turma_ids`) and
    `config_tx2` win when non-empty; otherwise the `config` mirrors are
    used. Row values and discounts are normalized to canonical strings, so
    display-masked mirrors decode to the same plan as the flat fields.
    With no rows anywhere the plan gets the default row.
    """
    config = _as_mapping(record.get("config"))

    if record.get("tipo_curso") is not None:
        legacy_type = _text(record.get("tipo_curso"))
    elif config.get("tipo_curso") is not None:
        legacy_type = _text(config.get("tipo_curso"))
    else:
        legacy_type = settings.default_legacy_course_type

    total = _first_present(record.get("valor"), record.get("valor_total"), config.get("valor"))

    class_scope = _class_ids(
        _first_present(
            record.get("previsao_turma_ids"),
            record.get("previsao_turma"),
            config.get("previsao_turma"),
        )
    )

    options = _rows(record.get("parcelas")) or _rows(config.get("parcelas"))
    if not options:
        options = [default_option(settings)]

    terms = _terms(record.get("config_tx2")) or _terms(config.get("tx2"))

    plan_id = _text(record.get("id")).strip() or None
    updated_at = _text(
        _first_present(record.get("atualizado"), record.get("updated_at"), config.get("atualizado"))
    ) or None

    return InstallmentPlan(
        id=plan_id,
        course_id=_text(record.get("id_curso")),
        name=_text(record.get("nome")),
        total_value=remove_mask(total),
        active=ActiveStatus.parse(record.get("ativo", ActiveStatus.ACTIVE.value)),
        note=_text(record.get("obs")),
        legacy_course_type=legacy_type,
        class_scope=class_scope,
        options=tuple(options),
        terms=tuple(terms),
        updated_at=updated_at,
    )


def decode_wire(
    pairs: Sequence[Tuple[str, str]],
    settings: EngineSettings = engine_settings,
) -> InstallmentPlan:
    """Decode a plan straight from encoded form pairs."""
    return decode(parse_wire(pairs), settings)
