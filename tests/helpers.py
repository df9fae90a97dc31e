"""Shared builders for tests."""
from faceblend.schemas.identity import Identity

FAKE_IMAGE_URL = "https://replicate.delivery/fake/fused.png"


def make_pool(size: int) -> tuple[Identity, ...]:
    """Pool of ``size`` identities named "Actor A", "Actor B", ... with ids 1..size."""
    return tuple(
        Identity(id=i + 1, name=f"Actor {chr(ord('A') + i)}", profile_path=f"/actor{i + 1}.jpg")
        for i in range(size)
    )
