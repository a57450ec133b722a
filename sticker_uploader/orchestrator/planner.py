"""Group planner - turns an ordered item list into per-group plan entries."""
import json
from typing import Dict, List, Sequence, Tuple

from ..models import MAX_GROUP_SIZE, Group, Item, Operation, PlanEntry
from ..services.naming import PackNaming

ATTACH_PREFIX = "attach://"


class GroupPlanner:
    """
    Pure transformation from items to Groups and PlanEntries.

    Entry 0 of every group creates the sticker set, the rest append to it.
    Pack name and title are computed once per group and copied onto every
    entry, so retries always target the same set.
    """

    def __init__(
        self,
        naming: PackNaming,
        group_size: int = MAX_GROUP_SIZE,
        emoji: str = "\U0001F525",
        sticker_format: str = "video",
        file_field: str = "sticker_file",
    ):
        if group_size < 1:
            raise ValueError("group_size must be >= 1")
        self._naming = naming
        self._group_size = group_size
        self._emoji = emoji
        self._sticker_format = sticker_format
        self._file_field = file_field

    @staticmethod
    def partition(items: Sequence[Item], group_size: int) -> List[Group]:
        """Contiguous chunks of ``group_size``; last one may be shorter."""
        if group_size < 1:
            raise ValueError("group_size must be >= 1")
        return [
            Group(index=start // group_size, items=tuple(items[start:start + group_size]))
            for start in range(0, len(items), group_size)
        ]

    def _descriptor(self) -> Dict[str, object]:
        return {
            "sticker": f"{ATTACH_PREFIX}{self._file_field}",
            "emoji_list": [self._emoji],
            "format": self._sticker_format,
        }

    def _create_fields(self, pack_name: str, title: str) -> Dict[str, str]:
        return {
            "user_id": self._naming.owner_id,
            "name": pack_name,
            "title": title,
            "stickers": json.dumps([self._descriptor()], ensure_ascii=False),
            "sticker_format": self._sticker_format,
        }

    def _append_fields(self, pack_name: str) -> Dict[str, str]:
        return {
            "user_id": self._naming.owner_id,
            "name": pack_name,
            "sticker": json.dumps(self._descriptor(), ensure_ascii=False),
        }

    def plan_group(self, group: Group) -> List[PlanEntry]:
        pack_name = self._naming.pack_name(group.index)
        title = self._naming.title(group.index)

        entries = []
        for position, item in enumerate(group.items):
            if position == 0:
                operation = Operation.CREATE_COLLECTION
                fields = self._create_fields(pack_name, title)
            else:
                operation = Operation.APPEND_ITEM
                fields = self._append_fields(pack_name)
            entries.append(
                PlanEntry(
                    group_index=group.index,
                    position=position,
                    item=item,
                    operation=operation,
                    pack_name=pack_name,
                    fields=fields,
                )
            )
        return entries

    def plan(self, items: Sequence[Item]) -> List[Tuple[Group, List[PlanEntry]]]:
        return [(group, self.plan_group(group)) for group in self.partition(items, self._group_size)]
