"""Profile directory stub."""

from __future__ import annotations

from collections.abc import Iterable

from civic_consensus.application.ports.profile_directory import (
    ProfileDirectoryProtocol,
    UserProfile,
)


class ProfileDirectoryStub(ProfileDirectoryProtocol):
    """In-memory display profiles."""

    def __init__(self, profiles: Iterable[UserProfile] = ()) -> None:
        self._profiles = {p.user_id: p for p in profiles}

    def add_profile(self, user_id: str, name: str, avatar_url: str | None = None) -> None:
        self._profiles[user_id] = UserProfile(user_id=user_id, name=name, avatar_url=avatar_url)

    async def get_profiles(self, user_ids: Iterable[str]) -> dict[str, UserProfile]:
        return {uid: self._profiles[uid] for uid in set(user_ids) if uid in self._profiles}
