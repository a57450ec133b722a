"""Sticker set naming: identifiers, titles and public links."""
from dataclasses import dataclass

ADD_STICKERS_URL = "https://t.me/addstickers/"


@dataclass(frozen=True)
class PackNaming:
    """Derives per-group names from the owner id and bot identity."""
    owner_id: str
    bot_username: str
    pack_prefix: str = "gif_pack"
    title_prefix: str = "Go GIF Pack"

    def pack_name(self, group_index: int) -> str:
        # Bot API requires set names to end in _by_<bot_username>
        bot = self.bot_username.lstrip("@")
        return f"{self.pack_prefix}_{group_index}_{self.owner_id}_by_{bot}"

    def title(self, group_index: int) -> str:
        return f"{self.title_prefix} Part {group_index + 1}"

    @staticmethod
    def link(pack_name: str) -> str:
        return f"{ADD_STICKERS_URL}{pack_name}"
