import re
import uuid
from datetime import datetime, timezone
from typing import Optional


def new_id() -> str:
    """Random unique identifier for bets, decisions and slips."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def generate_match_id(
    home_team: str,
    away_team: str,
    kickoff: Optional[datetime] = None,
) -> str:
    """
    Generate a consistent identifier for a match.

    Format: {home_team}_vs_{away_team}_{YYYYMMDD}

    Args:
        home_team: Name of home team
        away_team: Name of away team
        kickoff: Kickoff time (optional, but recommended for uniqueness)
    """
    def clean(s: str) -> str:
        s = s.lower().strip()
        s = re.sub(r'[^a-z0-9]+', '_', s)
        return s.strip('_')

    base_id = f"{clean(home_team)}_vs_{clean(away_team)}"

    if kickoff is not None:
        return f"{base_id}_{kickoff.strftime('%Y%m%d')}"

    return base_id
