"""Group and member lookups the read side of activities depends on."""

from __future__ import annotations

from typing import Optional, Protocol, Sequence

from pydantic import BaseModel, ConfigDict


class Group(BaseModel):
	"""A group that activities can be assigned to."""

	id: str
	long_name: str
	color: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)


class Member(BaseModel):
	"""Directory view of a member; activities only store the id."""

	id: str
	nickname: str
	firstname: str = ""
	lastname: str = ""
	email: Optional[str] = None
	avatar_url: Optional[str] = None

	model_config = ConfigDict(from_attributes=True)


class GroupDirectory(Protocol):
	async def get_group(self, group_id: str) -> Group | None: ...

	async def all_available_groups(self) -> Sequence[Group]: ...

	async def all_group_colors(self) -> dict[str, str]: ...


class MemberDirectory(Protocol):
	async def get_member_for_id(self, member_id: str) -> Member | None: ...

	async def get_members_for_ids(self, member_ids: Sequence[str]) -> Sequence[Member]: ...

	async def attach_avatar(self, member: Member) -> None:
		"""Resolve and store ``member.avatar_url`` in place."""
		...
