"""Shared parsing helpers for simple runtime/config coercions."""


def parse_site_id(value, site_ids):
    """Return the canonical site id or raise for ids outside the configured fleet."""
    text = str(value).strip().upper()
    if text not in site_ids:
        allowed_text = ", ".join(site_ids)
        raise ValueError(f"Unknown site id '{value}'. Known sites: {allowed_text}.")
    return text


def parse_power_source(value):
    """Normalize a power-source name. 'storage' and 'green' are accepted for battery."""
    text = str(value).strip().lower()
    if text in {"battery", "storage", "green"}:
        return "battery"
    if text == "grid":
        return "grid"
    raise ValueError(f"Unknown power source '{value}'. Expected 'battery' or 'grid'.")
