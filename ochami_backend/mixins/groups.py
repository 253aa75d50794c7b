"""SMD group operations"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any, Dict, List, Optional, Sequence

from ochami_backend.descriptors import BatchResult, OperationDescriptor, ResourceKind, Selector, resolve_selector
from ochami_backend.errors import InvalidArgumentError, OchamiError
from ochami_backend.models import Group, GroupFilter, Member, Members, validate_input
from ochami_backend.request_builder import encode_segment

logger = logging.getLogger(__name__)

# Concurrent member lookups in get_member_vec_from_group_name_vec
GROUP_LOOKUP_CONCURRENCY = 10

MEMBER_REMOVED = "removed"
MEMBER_ADDED = "added"


def _optional_hosts(selector: Optional[Selector]) -> List[str]:
    """Hosts of a selector that may be None or empty."""
    if selector is None:
        return []
    if isinstance(selector, str):
        return resolve_selector(selector) if selector.strip() else []
    items = list(selector) if isinstance(selector, Iterable) else selector
    return resolve_selector(items) if items else []


class GroupsMixin:
    """Mixin providing node group operations for the OCHAMI backend"""

    async def get_all_groups(self) -> List[Group]:
        return await self.get_groups()

    async def get_group_available(self) -> List[Group]:
        return await self.get_all_groups()

    async def get_group_name_available(self) -> List[str]:
        return [group.label for group in await self.get_group_available()]

    async def get_group(self, label: str) -> Group:
        descriptor = OperationDescriptor(ResourceKind.GROUP, segments=(label,))
        return await self._dispatch(descriptor, Group)

    async def get_groups(self, labels: Optional[Sequence[str]] = None) -> List[Group]:
        query = validate_input(GroupFilter, group=list(labels)) if labels else None
        descriptor = OperationDescriptor(ResourceKind.GROUP, query=query)
        return await self._dispatch(descriptor, List[Group])

    async def add_group(self, group: Group) -> Group:
        descriptor = OperationDescriptor(ResourceKind.GROUP, method="POST", payload=group)
        await self._dispatch(descriptor)
        logger.info(f"Created group '{group.label}'")
        return group

    async def delete_group(self, label: str) -> Any:
        descriptor = OperationDescriptor(ResourceKind.GROUP, method="DELETE", segments=(label,))
        return await self._dispatch(descriptor)

    async def get_group_members(self, label: str) -> List[str]:
        descriptor = OperationDescriptor(ResourceKind.GROUP, segments=(label, "members"))
        members = await self._dispatch(descriptor, Members)
        return members.ids

    async def get_member_vec_from_group_name_vec(self, labels: Sequence[str]) -> List[str]:
        """
        Collect the members of several groups.

        Groups that cannot be read are logged and skipped; the remaining
        members are merged in label order without duplicates.
        """
        semaphore = asyncio.Semaphore(GROUP_LOOKUP_CONCURRENCY)

        async def members_of(label: str) -> List[str]:
            async with semaphore:
                try:
                    return await self.get_group_members(label)
                except OchamiError as e:
                    logger.warning(f"Could not get members of group '{label}': {e}")
                    return []

        member_lists = await asyncio.gather(*(members_of(label) for label in labels))

        seen = set()
        members = []
        for member_list in member_lists:
            for xname in member_list:
                if xname not in seen:
                    seen.add(xname)
                    members.append(xname)
        return members

    async def get_group_map_and_filter_by_group_vec(self, labels: Sequence[str]) -> Dict[str, List[str]]:
        wanted = set(labels)
        groups = await self.get_groups(labels)
        return {group.label: group.member_ids() for group in groups if group.label in wanted}

    async def get_group_map_and_filter_by_member_vec(self, xnames: Sequence[str]) -> Dict[str, List[str]]:
        """
        Find the groups holding any of the given hosts.

        Returns:
            Dict[str, List[str]]: Label to the given hosts that are members of
                that group; groups holding none of them are left out
        """
        wanted = set(xnames)
        group_map: Dict[str, List[str]] = {}
        for group in await self.get_all_groups():
            members = [xname for xname in group.member_ids() if xname in wanted]
            if members:
                group_map[group.label] = members
        return group_map

    async def post_member(self, label: str, xname: str) -> Any:
        descriptor = OperationDescriptor(
            ResourceKind.GROUP,
            method="POST",
            segments=(label, "members"),
            payload=validate_input(Member, id=xname),
            hosts=(xname,),
        )
        return await self._dispatch(descriptor)

    async def add_members_to_group(self, label: str, selector: Selector) -> BatchResult:
        encode_segment(label)

        async def add(xname: str) -> Any:
            return await self.post_member(label, xname)

        return await self._fan_out_per_host(selector, add, f"add_members_to_group({label})")

    async def delete_member_from_group(self, label: str, xname: str) -> None:
        descriptor = OperationDescriptor(
            ResourceKind.GROUP,
            method="DELETE",
            segments=(label, "members", xname),
            hosts=(xname,),
        )
        await self._dispatch(descriptor)

    async def update_group_members(
        self,
        label: str,
        members_to_remove: Optional[Selector] = None,
        members_to_add: Optional[Selector] = None,
    ) -> BatchResult:
        """
        Remove some hosts from a group and add others, one request per host.

        Values are MEMBER_REMOVED or MEMBER_ADDED. A host may not appear in
        both node sets.

        Raises:
            InvalidArgumentError: Bad label, nothing to change, or a host in both node sets
            HostlistParseError: Malformed hostlist
        """
        encode_segment(label)
        to_remove = _optional_hosts(members_to_remove)
        to_add = _optional_hosts(members_to_add)
        if not to_remove and not to_add:
            raise InvalidArgumentError(f"Nothing to update in group '{label}': no members to remove or add")

        both = sorted(set(to_remove) & set(to_add))
        if both:
            raise InvalidArgumentError(f"Nodes '{','.join(both)}' are both removed from and added to '{label}'")

        removals = set(to_remove)

        async def update(xname: str) -> str:
            if xname in removals:
                await self.delete_member_from_group(label, xname)
                return MEMBER_REMOVED
            await self.post_member(label, xname)
            return MEMBER_ADDED

        return await self._fan_out_per_host(to_remove + to_add, update, f"update_group_members({label})")

    async def migrate_group_members(self, target_label: str, parent_label: str, selector: Selector) -> BatchResult:
        """
        Move every host of a node set from parent_label to target_label.

        All hosts must currently be members of parent_label; otherwise
        nothing is changed. Each host is added to the target first and only
        removed from the parent once that succeeded, so a failure never
        leaves a host in neither group.

        Raises:
            InvalidArgumentError: Bad label, or hosts that are not members of parent_label
            OchamiError: The parent group's members could not be read
        """
        encode_segment(target_label)
        encode_segment(parent_label)
        hosts = resolve_selector(selector)

        parent_members = set(await self.get_group_members(parent_label))
        outsiders = [xname for xname in hosts if xname not in parent_members]
        if outsiders:
            raise InvalidArgumentError(f"Nodes '{','.join(outsiders)}' are not members of group '{parent_label}'")

        async def migrate(xname: str) -> str:
            await self.post_member(target_label, xname)
            await self.delete_member_from_group(parent_label, xname)
            return xname

        return await self._fan_out_per_host(
            hosts, migrate, f"migrate_group_members({parent_label} -> {target_label})"
        )
