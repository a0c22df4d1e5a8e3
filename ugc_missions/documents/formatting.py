from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

PENDING_SIGNATURE = "En attente de signature"
NOT_PROVIDED = "Non renseignée"

FORMAT_LABELS = {
    "9_16": "Vertical 9:16 (TikTok/Reels/Shorts)",
    "16_9": "Horizontal 16:9 (YouTube)",
    "1_1": "Carré 1:1 (Instagram)",
    "4_5": "Portrait 4:5 (Instagram/Facebook)",
}

SHORT_FORMAT_LABELS = {
    "9_16": "Vertical 9:16",
    "16_9": "Horizontal 16:9",
    "1_1": "Carré 1:1",
    "4_5": "Portrait 4:5",
}

SCRIPT_TYPE_LABELS = {
    "testimonial": "Témoignage",
    "unboxing": "Unboxing",
    "asmr": "ASMR",
    "tutorial": "Tutoriel",
    "lifestyle": "Lifestyle",
    "review": "Review produit",
}

RIGHTS_USAGE_LABELS = {
    "organic": "Diffusion organique uniquement",
    "paid_3m": "Organique + publicité payante (3 mois)",
    "paid_6m": "Organique + publicité payante (6 mois)",
    "paid_12m": "Organique + publicité payante (12 mois)",
    "perpetual": "Organique + publicité payante (durée illimitée)",
}

PRICING_PACK_LABELS = {
    "1_video": "1 vidéo",
    "3_videos": "3 vidéos",
    "custom": "Contenu sur mesure",
}


def ensure_utc(value: datetime) -> datetime:
    # SQLite hands timezone-aware columns back as naive values.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return ensure_utc(value).isoformat() if value else None


def from_cents(cents: Optional[int]) -> Optional[float]:
    if cents is None:
        return None
    return float(Decimal(cents) / 100)


def format_date_ch(value: datetime) -> str:
    return ensure_utc(value).strftime("%d.%m.%Y")


def format_timestamp(value: datetime) -> str:
    return ensure_utc(value).strftime("%d.%m.%Y %H:%M:%S UTC")


def to_cents(amount: Decimal | float | int | str) -> int:
    quantized = Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return int(quantized * 100)


def format_chf(cents: int) -> str:
    """1234550 -> "12'345.50" (Swiss grouping)."""
    sign = "-" if cents < 0 else ""
    units, remainder = divmod(abs(cents), 100)
    grouped = f"{units:,}".replace(",", "'")
    return f"{sign}{grouped}.{remainder:02d}"


def vat_split(amount_ttc_cents: int, rate_percent: float) -> tuple[int, int]:
    """Split a VAT-inclusive amount into (net, vat) cents."""
    ttc = Decimal(amount_ttc_cents)
    divisor = Decimal(1) + Decimal(str(rate_percent)) / Decimal(100)
    net = int((ttc / divisor).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return net, amount_ttc_cents - net


def format_rate(rate_percent: float) -> str:
    return f"{Decimal(str(rate_percent)).normalize():f}"


def label(mapping: dict[str, str], value: Optional[str]) -> str:
    if value is None:
        return ""
    return mapping.get(value, value)


def build_deliverables_text(
    *,
    script_type: str,
    video_format: str,
    product_name: str,
    script_notes: Optional[str] = None,
) -> str:
    lines = [
        f"• Type de contenu : {label(SCRIPT_TYPE_LABELS, script_type)}",
        f"• Format : {label(FORMAT_LABELS, video_format)}",
        f"• Produit : {product_name}",
    ]
    if script_notes:
        lines.append(f"• Notes créatives : {script_notes}")
    return "\n".join(lines)


def build_deliverables_summary(
    *,
    pricing_pack: str,
    script_type: str,
    video_format: str,
    product_name: str,
) -> str:
    return "\n".join(
        [
            f"Prestation : {label(PRICING_PACK_LABELS, pricing_pack)} UGC",
            f"Type : {label(SCRIPT_TYPE_LABELS, script_type)}",
            f"Format : {label(SHORT_FORMAT_LABELS, video_format)}",
            f"Produit : {product_name}",
        ]
    )


def short_reference(identifier: str) -> str:
    return identifier.replace("-", "")[:8].upper()
