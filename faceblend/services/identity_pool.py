"""Loading of the static identity pool."""
import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from faceblend.schemas.identity import Identity

logger = logging.getLogger(__name__)

_pool_adapter = TypeAdapter(list[Identity])


class IdentityPoolError(ValueError):
    """Raised when the identity pool file is missing or malformed."""


def parse_identity_pool(raw: str | bytes) -> tuple[Identity, ...]:
    """
    Parse and validate a JSON identity pool.

    Args:
        raw: JSON array of ``{"id", "name", "profile_path"}`` objects

    Returns:
        The identities in file order (order matters for selection)

    Raises:
        IdentityPoolError: On invalid JSON, invalid entries, duplicate ids or names
    """
    try:
        identities = _pool_adapter.validate_python(json.loads(raw))
    except (json.JSONDecodeError, ValidationError) as exc:
        raise IdentityPoolError(f"Invalid identity pool: {exc}") from exc

    seen_ids: set[int] = set()
    seen_names: set[str] = set()
    for identity in identities:
        if identity.id in seen_ids:
            raise IdentityPoolError(f"Duplicate identity id in pool: {identity.id}")
        # Guesses are matched by display name, so names must be unique too
        if identity.display_name in seen_names:
            raise IdentityPoolError(f"Duplicate display name in pool: {identity.display_name}")
        seen_ids.add(identity.id)
        seen_names.add(identity.display_name)

    return tuple(identities)


def load_identity_pool(path: Path) -> tuple[Identity, ...]:
    """Read the identity pool from ``path``."""
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise IdentityPoolError(f"Cannot read identity pool at {path}: {exc}") from exc

    pool = parse_identity_pool(raw)
    logger.info(f"Loaded {len(pool)} identities from {path}")
    return pool


@lru_cache(maxsize=4)
def get_identity_pool(path: Path) -> tuple[Identity, ...]:
    """Cached pool loader; the pool is read-only at runtime."""
    return load_identity_pool(path)
