"""
Unit Tests for the Plan Wire Codec.

These tests verify:
1. Exact key order and values of the encoded form payload
2. The flat (canonical) / config (display-masked) asymmetry
3. Round-trips through pairs and through an urlencoded body
4. Decoding fallbacks: config mirrors, JSON config, default row
"""

import json

from installment_tables.domain.entities import (
    ActiveStatus,
    InstallmentPlan,
    ParcelOption,
    TermEntry,
)
from installment_tables.service.installments import (
    EngineSettings,
    decode,
    decode_wire,
    encode,
    parse_urlencoded,
    parse_wire,
    to_urlencoded,
)


# =============================================================================
# Test Fixtures
# =============================================================================

SETTINGS = EngineSettings(
    locale="pt-BR",
    currency="BRL",
    default_installment_count=6,
    default_legacy_course_type="4",
)


def make_saved_plan() -> InstallmentPlan:
    """A persisted plan with two sparse rows, two classes and one term."""
    return InstallmentPlan(
        id="42",
        course_id="7",
        name="Padrão 2026",
        total_value="1200.00",
        active=ActiveStatus.ACTIVE,
        note="<p>Obs</p>",
        legacy_course_type="4",
        class_scope=("10", "11"),
        options=(
            ParcelOption(
                index=1,
                installment_count=3,
                entry_type="%",
                entry_value="10",
                interest="0",
                value="400.00",
                discount="50.00",
            ),
            ParcelOption(index=3, installment_count=12, entry_type="R$", value="100.00"),
        ),
        terms=(TermEntry("Pontualidade", "{total_parcelas}x de {valor_parcela}"),),
        updated_at="2026-01-05 10:00:00",
    )


EXPECTED_PAIRS = [
    ("id", "42"),
    ("id_curso", "7"),
    ("nome", "Padrão 2026"),
    ("valor", "1200.00"),
    ("ativo", "s"),
    ("tipo_curso", "4"),
    ("obs", "<p>Obs</p>"),
    ("atualizado", "2026-01-05 10:00:00"),
    ("config[valor]", "R$ 1.200,00"),
    ("config[tipo_curso]", "4"),
    ("previsao_turma[]", "10"),
    ("config[previsao_turma][]", "10"),
    ("previsao_turma[]", "11"),
    ("config[previsao_turma][]", "11"),
    ("parcelas[1][parcela]", "3"),
    ("parcelas[1][tipo_entrada]", "%"),
    ("parcelas[1][entrada]", "10"),
    ("parcelas[1][juros]", "0"),
    ("parcelas[1][valor]", "400.00"),
    ("parcelas[1][desconto]", "50.00"),
    ("config[parcelas][1][parcela]", "3"),
    ("config[parcelas][1][tipo_entrada]", "%"),
    ("config[parcelas][1][entrada]", "10"),
    ("config[parcelas][1][juros]", "0"),
    ("config[parcelas][1][valor]", "R$ 400,00"),
    ("config[parcelas][1][desconto]", "50.00"),
    ("parcelas[3][parcela]", "12"),
    ("parcelas[3][tipo_entrada]", "R$"),
    ("parcelas[3][entrada]", ""),
    ("parcelas[3][juros]", ""),
    ("parcelas[3][valor]", "100.00"),
    ("parcelas[3][desconto]", ""),
    ("config[parcelas][3][parcela]", "12"),
    ("config[parcelas][3][tipo_entrada]", "R$"),
    ("config[parcelas][3][entrada]", ""),
    ("config[parcelas][3][juros]", ""),
    ("config[parcelas][3][valor]", "R$ 100,00"),
    ("config[parcelas][3][desconto]", ""),
    ("config[tx2][0][name_label]", "Pontualidade"),
    ("config[tx2][0][name_valor]", "{total_parcelas}x de {valor_parcela}"),
]


# =============================================================================
# Encoding Tests
# =============================================================================

class TestEncode:
    """Tests for encode()."""

    def test_exact_pairs(self):
        assert encode(make_saved_plan(), SETTINGS) == EXPECTED_PAIRS

    def test_new_plan_omits_id_and_timestamp(self):
        plan = InstallmentPlan(
            course_id="7",
            name="Novo",
            legacy_course_type="4",
            options=(ParcelOption(index=1, installment_count=6),),
        )
        pairs = encode(plan, SETTINGS)
        keys = [key for key, _ in pairs]

        assert "id" not in keys
        assert "atualizado" not in keys
        assert keys[:6] == ["id_curso", "nome", "valor", "ativo", "tipo_curso", "obs"]
        assert ("obs", "") in pairs
        assert ("valor", "") in pairs
        assert ("config[valor]", "") in pairs
        assert ("parcelas[1][parcela]", "6") in pairs
        assert ("parcelas[1][valor]", "") in pairs
        assert ("config[parcelas][1][valor]", "") in pairs

    def test_empty_class_scope_emits_no_class_keys(self):
        plan = InstallmentPlan(name="Todos", options=(ParcelOption(index=1),))
        keys = [key for key, _ in encode(plan, SETTINGS)]
        assert "previsao_turma[]" not in keys
        assert "config[previsao_turma][]" not in keys

    def test_display_values_are_normalized(self):
        """Rows holding display text still go out canonical (flat) and masked (mirror)."""
        plan = InstallmentPlan(
            name="X",
            total_value="R$ 1.000,00",
            options=(ParcelOption(index=2, value="R$ 250,5", discount="R$ 10,00"),),
        )
        pairs = dict(encode(plan, SETTINGS))
        assert pairs["valor"] == "1000.00"
        assert pairs["config[valor]"] == "R$ 1.000,00"
        assert pairs["parcelas[2][valor]"] == "250.50"
        assert pairs["config[parcelas][2][valor]"] == "R$ 250,50"
        assert pairs["parcelas[2][desconto]"] == "10.00"
        assert pairs["config[parcelas][2][desconto]"] == "10.00"

    def test_mirror_uses_configured_currency(self):
        us = EngineSettings(locale="en-US", currency="USD")
        plan = InstallmentPlan(name="X", total_value="106.26", options=(ParcelOption(index=1),))
        assert dict(encode(plan, us))["config[valor]"] == "$ 106.26"

    def test_urlencoded_body(self):
        body = to_urlencoded([("nome", "Plano A"), ("config[valor]", "R$ 1.200,00")])
        assert body == "nome=Plano+A&config%5Bvalor%5D=R%24+1.200%2C00"


# =============================================================================
# Parsing Tests
# =============================================================================

class TestParseWire:
    """Tests for parse_wire() / parse_urlencoded()."""

    def test_nested_keys(self):
        record = parse_wire([
            ("a[b][]", "1"),
            ("a[b][]", "2"),
            ("x[1][y]", "z"),
            ("plain", "v"),
        ])
        assert record == {"a": {"b": ["1", "2"]}, "x": {"1": {"y": "z"}}, "plain": "v"}

    def test_plus_is_space(self):
        record = parse_urlencoded("nome=Plano+A&previsao_turma%5B%5D=3&obs=")
        assert record == {"nome": "Plano A", "previsao_turma": ["3"], "obs": ""}


# =============================================================================
# Decoding Tests
# =============================================================================

class TestDecode:
    """Tests for decode() / decode_wire()."""

    def test_round_trip_through_pairs(self):
        plan = make_saved_plan()
        assert decode_wire(encode(plan, SETTINGS), SETTINGS) == plan

    def test_round_trip_through_urlencoded_body(self):
        plan = make_saved_plan()
        body = to_urlencoded(encode(plan, SETTINGS))
        assert decode(parse_urlencoded(body), SETTINGS) == plan

    def test_round_trip_shapes(self):
        """1-12 options, with and without terms and classes."""
        for count in range(1, 13):
            plan = InstallmentPlan(
                course_id="3",
                name=f"Plano {count}",
                total_value="999.99",
                active=ActiveStatus.INACTIVE if count % 2 else ActiveStatus.ACTIVE,
                legacy_course_type="2",
                class_scope=tuple(str(c) for c in range(count % 3)),
                options=tuple(
                    ParcelOption(index=i * 2, installment_count=i, value=f"{i}.50")
                    for i in range(1, count + 1)
                ),
                terms=tuple(TermEntry(f"L{t}", f"T{t}") for t in range(count % 4)),
            )
            assert decode_wire(encode(plan, SETTINGS), SETTINGS) == plan

    def test_empty_class_scope_decodes_empty(self):
        plan = InstallmentPlan(name="Todos", legacy_course_type="4", options=(ParcelOption(index=1),))
        decoded = decode_wire(encode(plan, SETTINGS), SETTINGS)
        assert decoded.class_scope == ()

    def test_blank_class_ids_are_dropped(self):
        assert decode({"nome": "X", "previsao_turma": ["", " "]}, SETTINGS).class_scope == ()

    def test_config_mirror_only(self):
        """Without flat rows/classes the masked mirrors give the same plan."""
        plan = make_saved_plan()
        pairs = [
            (key, value)
            for key, value in encode(plan, SETTINGS)
            if not key.startswith(("parcelas[", "previsao_turma["))
        ]
        assert decode_wire(pairs, SETTINGS) == plan

    def test_top_level_rows_win(self):
        record = {
            "nome": "X",
            "parcelas": [{"parcela": "2", "valor": "50"}],
            "config": {"parcelas": {"5": {"parcela": "9"}}},
        }
        plan = decode(record, SETTINGS)
        assert plan.options == (ParcelOption(index=1, installment_count=2, value="50.00"),)

    def test_list_rows_with_explicit_index(self):
        record = {"parcelas": [{"index": 4, "parcela": "2"}, {"index": "7", "parcela": "3"}]}
        assert [o.index for o in decode(record, SETTINGS).options] == [4, 7]

    def test_duplicate_row_index_keeps_first(self):
        record = {"parcelas": [{"index": 2, "parcela": "2"}, {"index": 2, "parcela": "3"}]}
        plan = decode(record, SETTINGS)
        assert plan.options == (ParcelOption(index=2, installment_count=2),)

    def test_json_config(self):
        config = {
            "valor": "R$ 900,00",
            "tipo_curso": "2",
            "previsao_turma": ["5"],
            "parcelas": {"2": {"parcela": "3", "valor": "R$ 300,00"}},
            "tx2": [{"name_label": "L", "name_valor": "T"}],
        }
        plan = decode({"id": 8, "nome": "A", "config": json.dumps(config)}, SETTINGS)

        assert plan.id == "8"
        assert plan.total_value == "900.00"
        assert plan.legacy_course_type == "2"
        assert plan.class_scope == ("5",)
        assert plan.options == (ParcelOption(index=2, installment_count=3, value="300.00"),)
        assert plan.terms == (TermEntry("L", "T"),)

    def test_unreadable_config_is_ignored(self):
        plan = decode({"nome": "A", "config": "{not json"}, SETTINGS)
        assert plan.name == "A"
        assert plan.options == (ParcelOption(index=1, installment_count=6),)

    def test_default_row_and_defaults(self):
        plan = decode({"nome": "Vazio"}, SETTINGS)
        assert plan.options == (ParcelOption(index=1, installment_count=6),)
        assert plan.legacy_course_type == "4"
        assert plan.active is ActiveStatus.ACTIVE
        assert plan.id is None
        assert plan.terms == ()

    def test_oversized_record_amounts_decode_blank(self):
        plan = decode(
            {"nome": "Grande", "valor": "9" * 40, "parcelas": {"1": {"parcela": "3", "valor": "9" * 30}}},
            SETTINGS,
        )
        assert plan.total_value == ""
        assert plan.options[0].value == ""

    def test_blank_course_type_is_kept(self):
        assert decode({"tipo_curso": ""}, SETTINGS).legacy_course_type == ""

    def test_server_record_fields(self):
        record = {
            "id": 12,
            "id_curso": 7,
            "nome": "Servidor",
            "valor": "1200.00",
            "ativo": "y",
            "previsao_turma_ids": [3, 4],
            "updated_at": "2026-02-01T12:00:00Z",
            "config_tx2": {"1": {"name_label": "B", "name_valor": "2"}, "0": {"name_label": "A", "name_valor": "1"}},
        }
        plan = decode(record, SETTINGS)

        assert plan.id == "12"
        assert plan.course_id == "7"
        assert plan.active is ActiveStatus.LEGACY
        assert plan.class_scope == ("3", "4")
        assert plan.updated_at == "2026-02-01T12:00:00Z"
        assert plan.terms == (TermEntry("A", "1"), TermEntry("B", "2"))

    def test_legacy_active_flag_survives(self):
        plan = decode({"nome": "X", "ativo": "y"}, SETTINGS)
        assert dict(encode(plan, SETTINGS))["ativo"] == "y"
