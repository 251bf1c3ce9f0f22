"""
Turns an analysis result plus the uploaded images into an eBay-style listing.

Everything here is a pure function of its arguments. Model output is
untrusted, so every field is read defensively and missing or oddly typed
values fall back to fixed defaults instead of raising.
"""
import html
import json
from typing import Any, List, Sequence

from ebay_lister.app.schemas.listing import AnalysisResult, ListingDocument, SpecificationRow, UploadedImage

DEFAULT_TITLE = "Product"
DEFAULT_DESCRIPTION = "Quality product in good condition."
DEFAULT_MAX_DESCRIPTION_CHARS = 500
MISSING_VALUE = "—"

FEATURE_BLOCK = [
    ("Fast Shipping", "Ships within 1 business day, carefully packed."),
    ("Buyer Protection", "Covered by the eBay Money Back Guarantee."),
    ("Easy Returns", "30-day returns accepted on this item."),
]
CALL_TO_ACTION = "Questions? Message us before you buy. We reply within 24 hours!"


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (list, tuple, dict)):
        return coerce_value(value).strip()
    return _scalar(value)


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def normalize_label(key: str) -> str:
    words = str(key).replace("_", " ").replace("-", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words)


def coerce_value(value: Any, depth: int = 0) -> str:
    if value is None:
        return MISSING_VALUE
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        if depth > 1:
            return json.dumps(value, ensure_ascii=False)
        items = (coerce_value(v, depth + 1).strip() for v in value)
        return ", ".join(item for item in items if item)
    if isinstance(value, dict):
        if depth > 0:
            return json.dumps(value, ensure_ascii=False)
        pairs = []
        for key, inner in value.items():
            inner_text = coerce_value(inner, depth + 1).strip()
            if inner_text:
                pairs.append(f"{normalize_label(key)}: {inner_text}")
        return "; ".join(pairs)
    return _scalar(value)


def build_title(result: AnalysisResult) -> str:
    suggested = _text(result.suggested_title)
    if suggested:
        return suggested
    combined = f"{_text(result.brand)} {_text(result.product_name)}".strip()
    return combined or DEFAULT_TITLE


def build_specification_rows(result: AnalysisResult) -> List[SpecificationRow]:
    specs = result.specifications
    if not isinstance(specs, dict):
        return [
            SpecificationRow(label="Brand", value=_text(result.brand) or "N/A"),
            SpecificationRow(label="Condition", value=_text(result.condition) or "Used"),
            SpecificationRow(label="Category", value=_text(result.category) or "Other"),
        ]

    rows = []
    for key, value in specs.items():
        label = normalize_label(key)
        text = coerce_value(value).strip()
        if not label or not text:
            continue
        rows.append(SpecificationRow(label=label, value=text))
    return rows


def build_description(result: AnalysisResult, max_chars: int = DEFAULT_MAX_DESCRIPTION_CHARS) -> str:
    description = _text(result.description)
    if not description:
        parts = []
        brand = _text(result.brand)
        product_name = _text(result.product_name)
        if brand and product_name:
            parts.append(f"{brand} {product_name}")
        if isinstance(result.key_features, (list, tuple)):
            features = [_text(f) for f in result.key_features]
            features = [f for f in features if f]
            if features:
                parts.append(f"Key features: {', '.join(features)}")
        condition = _text(result.condition)
        if condition:
            parts.append(f"Condition: {condition}")
        description = ". ".join(parts) or DEFAULT_DESCRIPTION
    return description[:max_chars]


def _subtitle(result: AnalysisResult) -> str:
    name = f"{_text(result.brand)} {_text(result.product_name)}".strip()
    parts = [p for p in (name, _text(result.category)) if p]
    return " · ".join(parts)


def _badges(result: AnalysisResult) -> List[str]:
    return [b for b in (_text(result.brand), _text(result.condition), _text(result.category)) if b]


def render_specification_table(rows: Sequence[SpecificationRow]) -> str:
    body = "".join(
        f"<tr><th>{html.escape(row.label)}</th><td>{html.escape(row.value)}</td></tr>" for row in rows
    )
    return (
        '<table class="specs-table">\n'
        "            <thead>\n"
        "                <tr><th>Specification</th><th>Details</th></tr>\n"
        "            </thead>\n"
        f"            <tbody>{body}</tbody>\n"
        "        </table>"
    )


_STYLE = """
        body { font-family: Arial, sans-serif; max-width: 900px; margin: 0 auto; padding: 20px; line-height: 1.6; color: #333; }
        .listing-header { text-align: center; margin-bottom: 30px; }
        .listing-title { font-size: 26px; font-weight: bold; margin-bottom: 8px; }
        .listing-subtitle { color: #666; font-size: 16px; margin-bottom: 12px; }
        .badge { display: inline-block; background: #e8f2fb; color: #0654ba; border-radius: 12px; padding: 4px 12px; margin: 0 4px; font-size: 13px; }
        .hero-image { text-align: center; margin: 20px 0; }
        .hero-image img { max-width: 100%; height: auto; border-radius: 8px; box-shadow: 0 2px 8px rgba(0,0,0,0.1); }
        .gallery { display: grid; grid-template-columns: repeat(auto-fill, minmax(160px, 1fr)); gap: 10px; margin: 20px 0; }
        .gallery img { width: 100%; height: auto; border-radius: 6px; }
        .section-title { font-size: 18px; font-weight: bold; margin: 20px 0 10px 0; border-bottom: 2px solid #007ebf; padding-bottom: 5px; }
        .specs-table { width: 100%; border-collapse: collapse; margin: 20px 0; }
        .specs-table th, .specs-table td { padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }
        .specs-table th { background-color: #f5f5f5; font-weight: bold; }
        .features { display: grid; grid-template-columns: repeat(3, 1fr); gap: 12px; margin: 30px 0; }
        .feature { background: #f9f9f9; border-radius: 8px; padding: 14px; text-align: center; }
        .cta-banner { background: #0654ba; color: #fff; text-align: center; padding: 18px; border-radius: 8px; font-weight: bold; margin-top: 30px; }
"""


def render_document(
    result: AnalysisResult,
    title: str,
    rows: Sequence[SpecificationRow],
    description: str,
    images: Sequence[UploadedImage],
) -> str:
    subtitle = _subtitle(result)
    subtitle_html = f'\n        <div class="listing-subtitle">{html.escape(subtitle)}</div>' if subtitle else ""
    badges = "".join(f'<span class="badge">{html.escape(b)}</span>' for b in _badges(result))
    badges_html = f"\n        <div class=\"badges\">{badges}</div>" if badges else ""

    hero_html = ""
    gallery_html = ""
    if images:
        hero = images[0]
        hero_html = (
            '\n    <div class="hero-image">\n'
            f'        <img src="{html.escape(hero.encoded_content)}" alt="{html.escape(title)}">\n'
            "    </div>\n"
        )
        if len(images) > 1:
            tiles = "\n".join(
                f'        <img src="{html.escape(img.encoded_content)}" alt="Product Image {idx}">'
                for idx, img in enumerate(images[1:], start=2)
            )
            gallery_html = f'\n    <div class="gallery">\n{tiles}\n    </div>\n'

    features_list = ""
    if isinstance(result.key_features, (list, tuple)):
        items = [_text(f) for f in result.key_features]
        items = [f for f in items if f]
        if items:
            lis = "".join(f"<li>{html.escape(f)}</li>" for f in items)
            features_list = f"\n        <ul class=\"key-features\">{lis}</ul>"

    feature_tiles = "\n".join(
        f'        <div class="feature"><strong>{name}</strong><br>{text}</div>' for name, text in FEATURE_BLOCK
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{html.escape(title)}</title>
    <style>{_STYLE}    </style>
</head>
<body>
    <div class="listing-header">
        <h1 class="listing-title">{html.escape(title)}</h1>{subtitle_html}{badges_html}
    </div>
{hero_html}{gallery_html}
    <div class="specs-section">
        <h2 class="section-title">Product Specifications</h2>
        {render_specification_table(rows)}
    </div>

    <div class="description-section">
        <h2 class="section-title">Description</h2>
        <p>{html.escape(description)}</p>{features_list}
    </div>

    <div class="features">
{feature_tiles}
    </div>

    <div class="cta-banner">{html.escape(CALL_TO_ACTION)}</div>
</body>
</html>"""


def compose(
    result: AnalysisResult,
    images: Sequence[UploadedImage],
    max_description_chars: int = DEFAULT_MAX_DESCRIPTION_CHARS,
) -> ListingDocument:
    title = build_title(result)
    rows = build_specification_rows(result)
    description = build_description(result, max_description_chars)
    return ListingDocument(
        title=title,
        specification_rows=rows,
        description=description,
        complete_html=render_document(result, title, rows, description, list(images)),
    )
