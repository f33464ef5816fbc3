from dataclasses import dataclass, field


@dataclass(frozen=True)
class DiffSets:
    folders_missing_in_index: list[str]
    index_ghosts: list[str]
    index_duplicates: list[str]
    orphan_folders: list[str]
    orphan_bookmarks: list[str]
    missing_bookmark_folders: list[str] = field(default_factory=list)
    corrupted_keys: list[str] = field(default_factory=list)

    @property
    def index_is_clean(self) -> bool:
        return not (self.folders_missing_in_index or self.index_ghosts or self.index_duplicates)

    @property
    def is_clean(self) -> bool:
        return self.index_is_clean and not (self.orphan_folders or self.orphan_bookmarks or self.corrupted_keys)


@dataclass
class ApplyStats:
    index_added: int = 0
    index_removed: int = 0
    folders_created: int = 0
    bookmarks_repaired: int = 0
    bookmarks_removed: int = 0
    errors: int = 0
