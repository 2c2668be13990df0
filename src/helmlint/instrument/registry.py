from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import AbstractSet, Dict, Iterator, List


@dataclass(frozen=True)
class Declaration:
    token: str
    path: str
    line: int
    source: str

    def to_record(self) -> Dict[str, object]:
        return {
            "token": self.token,
            "path": self.path,
            "line": self.line,
            "source": self.source,
        }


class RegistryFrozenError(RuntimeError):
    pass


class DuplicateTokenError(RuntimeError):
    pass


class DeclarationRegistry:
    """Token -> Declaration mapping shared by the instrumentation workers.

    Registration is the only contended operation. Once frozen the registry
    is read-only; rendering must not add declarations.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Declaration] = {}
        self._frozen = False

    def register(self, path: str, line: int, source: str) -> Declaration:
        declaration = Declaration(token=str(uuid.uuid4()), path=path, line=line, source=source)
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(f"registry is frozen, cannot add {path}:{line}")
            if declaration.token in self._entries:
                raise DuplicateTokenError(f"duplicate token {declaration.token}")
            self._entries[declaration.token] = declaration
        return declaration

    def freeze(self) -> None:
        with self._lock:
            self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def tokens(self) -> List[str]:
        return list(self._entries)

    def declarations(self) -> List[Declaration]:
        return sorted(self._entries.values(), key=lambda decl: (decl.path, decl.line))

    def uncovered(self, surviving: AbstractSet[str]) -> List[Declaration]:
        return [decl for decl in self.declarations() if decl.token not in surviving]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: object) -> bool:
        return token in self._entries

    def __iter__(self) -> Iterator[Declaration]:
        return iter(self.declarations())
