"""Read-side helpers for activities: url checks and directory enrichment."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Iterable, Optional, Sequence

from pydantic import BaseModel

from activitydesk.activities.domain import directory, models
from activitydesk.activities.domain import repo as repo_module
from activitydesk.activities.domain.exceptions import NotFoundError
from activitydesk.settings import settings

_LOG = logging.getLogger(__name__)

# Stored as an activity's colour when it should inherit its group's colour.
COLOR_FROM_GROUP = "from_group"


class ActivityDisplay(BaseModel):
	"""An activity decorated for list views."""

	activity: models.Activity
	group_name: Optional[str] = None
	color_rgb: Optional[str] = None


class ActivityDetails(BaseModel):
	"""An activity with its group, participants and owner resolved."""

	activity: models.Activity
	group: Optional[directory.Group] = None
	participants: list[directory.Member] = []
	owner_nickname: Optional[str] = None


class ActivitiesService:
	def __init__(
		self,
		store: repo_module.ActivityStore | None = None,
		groups: directory.GroupDirectory | None = None,
		members: directory.MemberDirectory | None = None,
	) -> None:
		self.store = store or repo_module.ActivityRepository()
		self.groups = groups
		self.members = members

	async def is_valid_url(self, reserved_urls: Iterable[str] | None, url: str) -> bool:
		"""Check that ``url`` may be used for a new activity.

		Reserved words compare case-insensitively. An existing activity at the
		url makes it invalid; store errors propagate.
		"""
		candidate = url.strip()
		if not candidate or "/" in candidate:
			return False
		reserved = settings.reserved_activity_urls if reserved_urls is None else reserved_urls
		if candidate.lower() in {word.lower() for word in reserved}:
			return False
		existing = await self.store.get_activity(candidate)
		return existing is None

	async def get_activities_for_display(
		self,
		fetch: Callable[[], Awaitable[Sequence[models.Activity]]],
	) -> list[ActivityDisplay]:
		activities = await fetch()
		groups = self._require_groups()
		available = await groups.all_available_groups()
		colors = await groups.all_group_colors()
		names = {group.id: group.long_name for group in available}
		return [
			ActivityDisplay(
				activity=activity,
				group_name=names.get(activity.assigned_group) if activity.assigned_group else None,
				color_rgb=self._color_for(activity, colors),
			)
			for activity in activities
		]

	async def get_activity_with_group_and_participants(self, url: str) -> ActivityDetails:
		activity = await self.store.get_activity(url)
		if activity is None:
			raise NotFoundError("activity_not_found")
		groups = self._require_groups()
		members = self._require_members()
		group = await groups.get_group(activity.assigned_group) if activity.assigned_group else None
		participant_ids = activity.all_registered_member_ids()
		participants = list(await members.get_members_for_ids(participant_ids)) if participant_ids else []
		for participant in participants:
			await members.attach_avatar(participant)
		owner_nickname = None
		if activity.owner:
			owner = await members.get_member_for_id(activity.owner)
			owner_nickname = owner.nickname if owner else None
		if len(participants) != len(participant_ids):
			_LOG.warning(
				"activities.participants_missing",
				extra={"activity_id": activity.id, "expected": len(participant_ids), "found": len(participants)},
			)
		return ActivityDetails(
			activity=activity,
			group=group,
			participants=participants,
			owner_nickname=owner_nickname,
		)

	# ------------------------------------------------------------------
	# Helpers

	@staticmethod
	def _color_for(activity: models.Activity, group_colors: dict[str, str]) -> Optional[str]:
		if activity.color and activity.color != COLOR_FROM_GROUP:
			return activity.color
		if activity.assigned_group:
			return group_colors.get(activity.assigned_group)
		return None

	def _require_groups(self) -> directory.GroupDirectory:
		if self.groups is None:
			raise RuntimeError("group directory not configured")
		return self.groups

	def _require_members(self) -> directory.MemberDirectory:
		if self.members is None:
			raise RuntimeError("member directory not configured")
		return self.members


__all__ = ["ActivitiesService", "ActivityDetails", "ActivityDisplay", "COLOR_FROM_GROUP"]
