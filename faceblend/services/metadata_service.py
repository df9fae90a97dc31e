"""Identity hints from TMDB person metadata.

Hints are flavor text. A failed lookup degrades to placeholder hints and
never fails puzzle construction.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import httpx

from faceblend.schemas.identity import Identity
from faceblend.utils.exceptions import MetadataLookupFailure

logger = logging.getLogger(__name__)

FALLBACK_INITIALS = "???"
FALLBACK_NOTABLE_WORKS = "A famous role"
FALLBACK_ERA = "Within the past 100 years"

NOTABLE_WORKS_POOL_SIZE = 10
NOTABLE_WORKS_SHOWN = 3


@dataclass(frozen=True)
class IdentityHints:
    """Display hints for one answer identity."""

    initials_hint: str
    notable_works_hint: str
    era_hint: str
    portrait_ref: str | None = None

    def as_list(self) -> list[str]:
        """Hints in reveal order: era first, initials last."""
        return [self.era_hint, self.notable_works_hint, self.initials_hint]


class TMDBClient:
    """HTTP client for the TMDB person endpoints."""

    def __init__(
            self,
            api_key: str,
            base_url: str = "https://api.themoviedb.org/3",
            timeout: float = 10.0,
            client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._lock:
            if self._client is None:
                self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        async with self._lock:
            if self._client is not None and self._owns_client:
                await self._client.aclose()
                self._client = None

    async def _get(self, path: str) -> dict[str, Any]:
        if not self._api_key:
            raise MetadataLookupFailure("TMDB_API_KEY environment variable must be set")

        client = await self._ensure_client()
        try:
            response = await client.get(path, params={"api_key": self._api_key})
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as exc:
            raise MetadataLookupFailure(f"TMDB request {path} failed: {exc}") from exc
        except ValueError as exc:
            raise MetadataLookupFailure(f"TMDB returned invalid JSON for {path}") from exc

        if not isinstance(data, dict):
            raise MetadataLookupFailure(f"TMDB returned unexpected payload for {path}")
        return data

    async def get_person(self, person_id: int) -> dict[str, Any]:
        return await self._get(f"/person/{person_id}")

    async def get_combined_credits(self, person_id: int) -> dict[str, Any]:
        return await self._get(f"/person/{person_id}/combined_credits")


def initials_of(name: str) -> str:
    """``"Marlon Brando"`` -> ``"MB"``."""
    return "".join(part[0] for part in name.split() if part)


def format_era(birthday: Any) -> str | None:
    """Render a TMDB ``YYYY-MM-DD`` birthday, or None when absent or malformed."""
    if not isinstance(birthday, str) or not birthday:
        return None
    try:
        born = datetime.strptime(birthday, "%Y-%m-%d").date()
    except ValueError:
        return None
    return f"Born {born.strftime('%B')} {born.day}, {born.year}"


def pick_notable_works(credits: Any, rng: random.Random) -> str | None:
    """
    Pick a few well-known titles from a combined-credits payload.

    The most popular titles are shuffled with ``rng`` before picking, so the
    result varies between calls unless ``rng`` is seeded.
    """
    cast = credits.get("cast") if isinstance(credits, dict) else None
    if not isinstance(cast, list):
        return None

    titled = []
    for credit in cast:
        if not isinstance(credit, dict):
            continue
        title = credit.get("title") or credit.get("name")
        if not isinstance(title, str) or not title:
            continue
        popularity = credit.get("popularity")
        # bool is an int subclass but never a real score
        if not isinstance(popularity, (int, float)) or isinstance(popularity, bool):
            popularity = 0
        titled.append((popularity, title))

    titled.sort(key=lambda item: item[0], reverse=True)
    titles = [title for _, title in titled[:NOTABLE_WORKS_POOL_SIZE]]
    if not titles:
        return None

    rng.shuffle(titles)
    return ", ".join(titles[:NOTABLE_WORKS_SHOWN])


class MetadataEnricher:
    """Turn a pool identity into display hints, tolerating lookup failures."""

    def __init__(self, client: TMDBClient, image_base_url: str = "", rng: random.Random | None = None):
        self.client = client
        self.image_base_url = image_base_url.rstrip("/")
        self.rng = rng or random.Random()

    def _portrait_url(self, path: str | None) -> str | None:
        if not path:
            return None
        if path.startswith("/") and self.image_base_url:
            return f"{self.image_base_url}{path}"
        return path

    async def _lookup(self, fetch, identity: Identity, what: str) -> dict[str, Any] | None:
        try:
            return await fetch(identity.id)
        except MetadataLookupFailure as exc:
            logger.warning(f"Metadata lookup ({what}) failed for identity {identity.id}, using fallback: {exc}")
            return None

    async def enrich(self, identity: Identity) -> IdentityHints:
        """
        Build hints for ``identity``. Never raises for lookup problems.

        Each hint falls back on its own, so a failed credits call still
        leaves the birthday and portrait from a successful details call.
        """
        person, credits = await asyncio.gather(
            self._lookup(self.client.get_person, identity, "details"),
            self._lookup(self.client.get_combined_credits, identity, "credits"),
        )
        person = person or {}

        name = person.get("name") if isinstance(person.get("name"), str) else ""
        initials = initials_of(name or identity.display_name) or FALLBACK_INITIALS
        era = format_era(person.get("birthday")) or FALLBACK_ERA
        works = pick_notable_works(credits, self.rng) if credits else None
        portrait = person.get("profile_path") if isinstance(person.get("profile_path"), str) else None

        return IdentityHints(
            initials_hint=initials,
            notable_works_hint=works or FALLBACK_NOTABLE_WORKS,
            era_hint=era,
            portrait_ref=self._portrait_url(portrait or identity.portrait_ref),
        )

    async def close(self) -> None:
        await self.client.close()
