import logging

from hindsight.config import get_settings


def spell_url(spell_id: int) -> str:
    """Reference URL for a spell id (tooltip collaborators key off this)."""
    template = get_settings().aggregation.spell_url_template
    return template.format(spell_id=spell_id)


def format_duration(secs: float) -> str:
    """Render seconds as m:ss, truncating fractions."""
    secs = max(secs, 0)
    minutes = int(secs // 60)
    seconds = int(secs % 60)
    return f"{minutes}:{seconds:02d}"


def setup_logging(level: str | None = None) -> None:
    """Configure root logging for embedding applications and scripts."""
    logging.basicConfig(
        level=(level or get_settings().log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
