from datetime import datetime, timezone

import pytest

from ugc_missions.documents import formatting
from ugc_missions.documents.templates import (
    INVOICE_VARIABLES,
    MANDATE_CONTRACT_VARIABLES,
    render_invoice,
    render_mandate_contract,
)


def _mandate_variables(**overrides):
    variables = {name: f"<{name}>" for name in MANDATE_CONTRACT_VARIABLES}
    variables.update(overrides)
    return variables


def test_format_chf_uses_swiss_grouping():
    assert formatting.format_chf(1234550) == "12'345.50"
    assert formatting.format_chf(30000) == "300.00"
    assert formatting.format_chf(5) == "0.05"
    assert formatting.format_chf(-150000) == "-1'500.00"


def test_to_cents_rounds_half_up():
    assert formatting.to_cents("300") == 30000
    assert formatting.to_cents(12.345) == 1235
    assert formatting.from_cents(27752) == 277.52
    assert formatting.from_cents(None) is None


def test_vat_split_keeps_total():
    net, vat = formatting.vat_split(30000, 8.1)
    assert (net, vat) == (27752, 2248)
    assert net + vat == 30000
    assert formatting.vat_split(10000, 0) == (10000, 0)


def test_format_rate_drops_trailing_zeros():
    assert formatting.format_rate(8.1) == "8.1"
    assert formatting.format_rate(8.0) == "8"


def test_timestamps_render_in_utc():
    aware = datetime(2026, 3, 5, 14, 7, 9, 123456, tzinfo=timezone.utc)
    naive = datetime(2026, 3, 5, 14, 7, 9)
    assert formatting.format_timestamp(aware) == "05.03.2026 14:07:09 UTC"
    assert formatting.format_timestamp(naive) == "05.03.2026 14:07:09 UTC"
    assert formatting.format_date_ch(aware) == "05.03.2026"


def test_labels_fall_back_to_raw_value():
    assert formatting.label(formatting.FORMAT_LABELS, "9_16") == "Vertical 9:16 (TikTok/Reels/Shorts)"
    assert formatting.label(formatting.SCRIPT_TYPE_LABELS, "vlog") == "vlog"
    assert formatting.label(formatting.SCRIPT_TYPE_LABELS, None) == ""


def test_deliverables_text_lists_notes_only_when_present():
    text = formatting.build_deliverables_text(
        script_type="unboxing", video_format="1_1", product_name="Thé Alpin"
    )
    assert text.splitlines() == [
        "• Type de contenu : Unboxing",
        "• Format : Carré 1:1 (Instagram)",
        "• Produit : Thé Alpin",
    ]
    with_notes = formatting.build_deliverables_text(
        script_type="unboxing", video_format="1_1", product_name="Thé Alpin", script_notes="Lumière naturelle"
    )
    assert with_notes.endswith("• Notes créatives : Lumière naturelle")


def test_short_reference():
    assert formatting.short_reference("3f2a1b4c-9d8e-4f00-a000-000000000000") == "3F2A1B4C"


def test_contract_rendering_is_deterministic():
    variables = _mandate_variables(
        initiator_accepted_at=formatting.PENDING_SIGNATURE,
        counterparty_accepted_at=formatting.PENDING_SIGNATURE,
        counterparty_network_address=formatting.PENDING_SIGNATURE,
    )
    first = render_mandate_contract(variables)
    assert first == render_mandate_contract(dict(variables))
    assert "CONTRAT DE MANDAT" in first
    assert "<creator_full_name>" in first
    assert first.count(formatting.PENDING_SIGNATURE) == 3


def test_contract_rendering_requires_every_variable():
    variables = _mandate_variables()
    del variables["amount_ttc"]
    with pytest.raises(KeyError):
        render_mandate_contract(variables)


def test_invoice_rendering_includes_totals():
    variables = {name: f"<{name}>" for name in INVOICE_VARIABLES}
    variables.update(invoice_number="MOSH-2026-0007", amount_ttc="300.00")
    text = render_invoice(variables)
    assert "FACTURE" in text
    assert "N° de facture : MOSH-2026-0007" in text
    assert "TOTAL TTC :                     CHF 300.00" in text
