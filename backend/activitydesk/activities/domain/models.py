"""Domain models for activities, their resources and registrations."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from activitydesk.activities.domain.exceptions import AmbiguousResourceError, UnknownResourceError


class RegistrationEntry(BaseModel):
	"""A member occupying a slot, or queued for one."""

	member_id: str
	registered_at: datetime

	model_config = ConfigDict(frozen=True)


WaitinglistEntry = RegistrationEntry


class ResourceEntry(BaseModel):
	"""Flattened view of a registration tagged with its resource name."""

	resource_name: str
	member_id: str
	registered_at: datetime

	model_config = ConfigDict(frozen=True)


class Resource(BaseModel):
	"""Capacity-bounded bookable slot of an activity.

	``waitinglist`` is ``None`` when the resource does not support waitlisting at
	all; an empty list means waitlisting is supported but nobody is queued.
	A member id is held at most once across both lists.
	"""

	limit: Optional[int] = Field(default=None, ge=0)
	registration_open: bool = True
	registered_members: list[RegistrationEntry] = Field(default_factory=list)
	waitinglist: Optional[list[WaitinglistEntry]] = None

	@property
	def has_waitinglist(self) -> bool:
		return self.waitinglist is not None

	def registered_member_ids(self) -> list[str]:
		return [entry.member_id for entry in self.registered_members]

	def waitinglist_member_ids(self) -> list[str]:
		return [entry.member_id for entry in self.waitinglist or []]

	def is_registered(self, member_id: str) -> bool:
		return any(entry.member_id == member_id for entry in self.registered_members)

	def is_waitlisted(self, member_id: str) -> bool:
		return any(entry.member_id == member_id for entry in self.waitinglist or [])

	def is_full(self) -> bool:
		return self.limit is not None and len(self.registered_members) >= self.limit

	def free_slots(self) -> Optional[int]:
		if self.limit is None:
			return None
		return max(0, self.limit - len(self.registered_members))

	def admit(self, member_id: str, now: datetime) -> bool:
		if self.is_registered(member_id) or not self.registration_open or self.is_full():
			return False
		self.registered_members.append(RegistrationEntry(member_id=member_id, registered_at=now))
		self.remove_from_waitinglist(member_id)
		return True

	def remove(self, member_id: str) -> None:
		self.registered_members = [entry for entry in self.registered_members if entry.member_id != member_id]

	def add_to_waitinglist(self, member_id: str, now: datetime) -> bool:
		if self.waitinglist is None:
			return False
		if self.is_waitlisted(member_id) or self.is_registered(member_id):
			return False
		self.waitinglist.append(WaitinglistEntry(member_id=member_id, registered_at=now))
		return True

	def remove_from_waitinglist(self, member_id: str) -> None:
		if self.waitinglist is None:
			return
		self.waitinglist = [entry for entry in self.waitinglist if entry.member_id != member_id]


class Activity(BaseModel):
	"""A schedulable event owning its named resources.

	Resource names are the keys of ``resources``; their insertion order is the
	declaration order used by the flattening helpers.
	"""

	id: str = Field(default_factory=lambda: str(uuid4()), frozen=True)
	url: str = Field(frozen=True)
	title: str = ""
	description: str = ""
	location: str = ""
	direction: str = ""
	start_at: Optional[datetime] = None
	end_at: Optional[datetime] = None
	assigned_group: Optional[str] = None
	owner: Optional[str] = None
	color: Optional[str] = None
	resources: dict[str, Resource] = Field(default_factory=dict)
	version: int = 0

	def resource_names(self) -> list[str]:
		return list(self.resources)

	def resource_named(self, name: str) -> Resource:
		resource = self.resources.get(name)
		if resource is None:
			raise UnknownResourceError()
		return resource

	def sole_resource(self) -> Resource:
		if not self.resources:
			raise UnknownResourceError()
		if len(self.resources) > 1:
			raise AmbiguousResourceError()
		return next(iter(self.resources.values()))

	def _selected(self, resource_name: Optional[str]) -> list[Resource]:
		if resource_name is not None:
			return [self.resource_named(resource_name)]
		return list(self.resources.values())

	def _target(self, resource_name: Optional[str]) -> Optional[Resource]:
		if resource_name is not None:
			return self.resource_named(resource_name)
		if not self.resources:
			return None
		return self.sole_resource()

	def add_member_id(self, member_id: str, resource_name: Optional[str], now: datetime) -> bool:
		resource = self._target(resource_name)
		if resource is None:
			return False
		return resource.admit(member_id, now)

	def remove_member_id(self, member_id: str, resource_name: Optional[str] = None) -> None:
		for resource in self._selected(resource_name):
			resource.remove(member_id)

	def add_to_waitinglist(self, member_id: str, resource_name: Optional[str], now: datetime) -> bool:
		resource = self._target(resource_name)
		if resource is None:
			return False
		return resource.add_to_waitinglist(member_id, now)

	def remove_from_waitinglist(self, member_id: str, resource_name: Optional[str] = None) -> None:
		for resource in self._selected(resource_name):
			resource.remove_from_waitinglist(member_id)

	def all_registered_members(self) -> tuple[ResourceEntry, ...]:
		return tuple(
			ResourceEntry(resource_name=name, member_id=entry.member_id, registered_at=entry.registered_at)
			for name, resource in self.resources.items()
			for entry in resource.registered_members
		)

	def all_waitinglist_entries(self) -> tuple[ResourceEntry, ...]:
		return tuple(
			ResourceEntry(resource_name=name, member_id=entry.member_id, registered_at=entry.registered_at)
			for name, resource in self.resources.items()
			for entry in resource.waitinglist or []
		)

	def all_registered_member_ids(self) -> list[str]:
		# A member may hold slots in several resources; keep first occurrence only.
		return list(dict.fromkeys(entry.member_id for entry in self.all_registered_members()))

	def all_waitinglist_member_ids(self) -> list[str]:
		return list(dict.fromkeys(entry.member_id for entry in self.all_waitinglist_entries()))

	def is_already_registered(self, member_id: str) -> bool:
		return any(resource.is_registered(member_id) for resource in self.resources.values())
