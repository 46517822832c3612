"""
Read-only lookup of the connected account behind the capability tools.

The OAuth helper writes one ``<email>.json`` file per account into its
credential directory; the file's ``scopes`` list tells which capabilities
were granted.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

logger = logging.getLogger("CredentialStore")

UNKNOWN_ACCOUNT = "unknown"


@dataclass
class AccountIdentity:
    email: str = UNKNOWN_ACCOUNT
    scopes: List[str] = field(default_factory=list)


def read_first_credential_email(directory: Path) -> Optional[str]:
    """Returns the account email of the first credential file, preferring
    file names that look like an email address."""
    try:
        if not directory.is_dir():
            return None
        files = sorted(p.name for p in directory.iterdir() if p.suffix == ".json")
    except OSError as e:
        logger.warning("Cannot list credential directory %s: %s", directory, e)
        return None

    if not files:
        return None
    chosen = next((name for name in files if "@" in name), files[0])
    return chosen[: -len(".json")]


def read_scopes_for_email(directory: Path, email: str) -> List[str]:
    path = directory / f"{email}.json"
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return []
    except (OSError, ValueError) as e:
        logger.warning("Unreadable credential file %s: %s", path, e)
        return []

    scopes = raw.get("scopes") if isinstance(raw, dict) else None
    if not isinstance(scopes, list):
        return []
    return [scope for scope in scopes if isinstance(scope, str)]


def resolve_identity(directory: Path) -> AccountIdentity:
    email = read_first_credential_email(directory)
    if not email:
        return AccountIdentity()
    return AccountIdentity(email=email, scopes=read_scopes_for_email(directory, email))
