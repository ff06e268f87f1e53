"""Standard Torznab/Newznab category table."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TorznabCategory:
    id: int
    name: str

    @property
    def parent_id(self) -> int:
        return self.id - self.id % 1000

    @property
    def is_parent(self) -> bool:
        return self.id % 1000 == 0


_TABLE: tuple[tuple[int, str], ...] = (
    (1000, "Console"),
    (1010, "Console/NDS"),
    (1020, "Console/PSP"),
    (1030, "Console/Wii"),
    (1040, "Console/Xbox"),
    (1050, "Console/Xbox 360"),
    (1060, "Console/Wiiware"),
    (1070, "Console/Xbox 360 DLC"),
    (1080, "Console/PS3"),
    (1090, "Console/Other"),
    (1110, "Console/3DS"),
    (1120, "Console/PS Vita"),
    (1130, "Console/WiiU"),
    (1140, "Console/Xbox One"),
    (1180, "Console/PS4"),
    (2000, "Movies"),
    (2010, "Movies/Foreign"),
    (2020, "Movies/Other"),
    (2030, "Movies/SD"),
    (2040, "Movies/HD"),
    (2045, "Movies/UHD"),
    (2050, "Movies/BluRay"),
    (2060, "Movies/3D"),
    (2070, "Movies/DVD"),
    (2080, "Movies/WEB-DL"),
    (3000, "Audio"),
    (3010, "Audio/MP3"),
    (3020, "Audio/Video"),
    (3030, "Audio/Audiobook"),
    (3040, "Audio/Lossless"),
    (3050, "Audio/Other"),
    (3060, "Audio/Foreign"),
    (4000, "PC"),
    (4010, "PC/0day"),
    (4020, "PC/ISO"),
    (4030, "PC/Mac"),
    (4040, "PC/Mobile-Other"),
    (4050, "PC/Games"),
    (4060, "PC/Mobile-iOS"),
    (4070, "PC/Mobile-Android"),
    (5000, "TV"),
    (5010, "TV/WEB-DL"),
    (5020, "TV/Foreign"),
    (5030, "TV/SD"),
    (5040, "TV/HD"),
    (5045, "TV/UHD"),
    (5050, "TV/Other"),
    (5060, "TV/Sport"),
    (5070, "TV/Anime"),
    (5080, "TV/Documentary"),
    (6000, "XXX"),
    (6010, "XXX/DVD"),
    (6020, "XXX/WMV"),
    (6030, "XXX/XviD"),
    (6040, "XXX/x264"),
    (6045, "XXX/UHD"),
    (6050, "XXX/Pack"),
    (6060, "XXX/ImageSet"),
    (6070, "XXX/Other"),
    (7000, "Books"),
    (7010, "Books/Mags"),
    (7020, "Books/EBook"),
    (7030, "Books/Comics"),
    (7040, "Books/Technical"),
    (7050, "Books/Other"),
    (7060, "Books/Foreign"),
    (8000, "Other"),
    (8010, "Other/Misc"),
    (8020, "Other/Hashed"),
)

ALL_CATEGORIES: tuple[TorznabCategory, ...] = tuple(
    TorznabCategory(id=cid, name=name) for cid, name in _TABLE
)

_BY_ID = {c.id: c for c in ALL_CATEGORIES}
_BY_NAME = {c.name.lower(): c for c in ALL_CATEGORIES}

# Older definitions use a few legacy spellings.
_ALIASES = {
    "pc/phone-other": "PC/Mobile-Other",
    "pc/phone-ios": "PC/Mobile-iOS",
    "pc/phone-android": "PC/Mobile-Android",
    "books/ebooks": "Books/EBook",
    "books/magazines": "Books/Mags",
    "tv/hd-720p": "TV/HD",
    "movies/web": "Movies/WEB-DL",
}


def category_by_id(category_id: int) -> TorznabCategory | None:
    return _BY_ID.get(category_id)


def category_by_name(name: str) -> TorznabCategory | None:
    """Case-insensitive lookup by Torznab category name (e.g. ``TV/HD``)."""
    key = name.strip().lower()
    if key in _ALIASES:
        key = _ALIASES[key].lower()
    return _BY_NAME.get(key)


def parent_of(category_id: int) -> TorznabCategory | None:
    return _BY_ID.get(category_id - category_id % 1000)
