"""Общий контракт Segment и Cluster: идентичность, владельцы, протоколы.

Архитектура:
    SegmentIdentity — label_code / string / source_name
    OwnershipKey    — токен-полномочие: только кластер меняет список владельцев
    SegmentBase     — композиция identity + XList + список id владельцев
    SegmentLike / MembershipOwner — протоколы для кода драйверов кластеризации

Обратные ссылки член → кластер хранятся как id кластеров и разрешаются
через реестр SegServer. На сам сервер сущность держит weakref.
"""
from __future__ import annotations

import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from src.utils.logging import get_logger

from .accumulator import FrameAccumulator
from .errors import OwnershipInconsistencyError
from .xlist import XLine, XList

if TYPE_CHECKING:
    from .cluster import Cluster
    from .server import SegServer

logger = get_logger("segments.base")


# ──────────────────────────────────────────────
# Идентичность и полномочия
# ──────────────────────────────────────────────

@dataclass
class SegmentIdentity:
    """Идентификационные поля сегмента или кластера."""
    label_code: int = 0
    string: str = ""
    source_name: str = ""


class OwnershipKey:
    """Токен-полномочие для изменения списка владельцев.

    Существует ровно один экземпляр (_OWNERSHIP_KEY); его передают
    только Cluster и SegServer.
    """

    _instance: Optional[OwnershipKey] = None

    def __new__(cls) -> OwnershipKey:
        if cls._instance is not None:
            raise RuntimeError("OwnershipKey is a singleton")
        cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<OwnershipKey>"


_OWNERSHIP_KEY = OwnershipKey()


def _require_key(key: OwnershipKey) -> None:
    if key is not _OWNERSHIP_KEY:
        raise PermissionError("owner list can only be changed by a Cluster")


# ──────────────────────────────────────────────
# Протоколы
# ──────────────────────────────────────────────

@runtime_checkable
class SegmentLike(Protocol):
    """То, что может быть членом кластера."""

    id: int
    kind: str

    @property
    def label_code(self) -> int: ...

    def owners(self) -> list[Cluster]: ...

    def owner_ids(self) -> list[int]: ...

    def add_owner(self, key: OwnershipKey, owner: Cluster) -> None: ...

    def remove_owner(self, key: OwnershipKey, owner: Cluster) -> None: ...

    def contribution(self) -> FrameAccumulator: ...


@runtime_checkable
class MembershipOwner(Protocol):
    """То, что владеет членами и агрегирует их статистики."""

    id: int

    def add(self, member: SegmentLike) -> None: ...

    def remove(self, member: SegmentLike) -> None: ...

    def get_count(self) -> int: ...


# ──────────────────────────────────────────────
# Общая часть Segment / Cluster
# ──────────────────────────────────────────────

class SegmentBase:
    """Идентичность, аннотации и обратные ссылки на кластеры-владельцы.

    Создаётся только фабрикой SegServer.
    """

    kind = "abstract"

    def __init__(
        self,
        server: SegServer,
        entity_id: int,
        label_code: int = 0,
        string: str = "",
        source_name: str = "",
    ) -> None:
        self.id = entity_id
        self.identity = SegmentIdentity(label_code, string, source_name)
        self._server_ref = weakref.ref(server)
        self._list = XList()
        self._owner_ids: list[int] = []

    # ── Идентичность ────────────────────────────

    @property
    def label_code(self) -> int:
        return self.identity.label_code

    def set_label_code(self, label_code: int) -> None:
        self.identity.label_code = int(label_code)

    @property
    def string(self) -> str:
        return self.identity.string

    def set_string(self, s: str) -> None:
        self.identity.string = str(s)

    @property
    def source_name(self) -> str:
        return self.identity.source_name

    def set_source_name(self, source_name: str) -> None:
        self.identity.source_name = str(source_name)

    def get_server(self) -> SegServer:
        server = self._server_ref()
        if server is None:
            raise OwnershipInconsistencyError(
                f"{self.kind} {self.id} outlived its server"
            )
        return server

    # ── Аннотации ───────────────────────────────

    @property
    def xlist(self) -> XList:
        return self._list

    def rewind(self) -> None:
        """Курсор аннотаций — на первую строку."""
        self._list.rewind()

    def get_line(self, index: Optional[int] = None) -> Optional[XLine]:
        """Без индекса — строка под курсором (None в конце), с индексом — прямой доступ."""
        return self._list.get_line(index)

    def get_line_count(self) -> int:
        return self._list.get_line_count()

    def find_line(self, key: str, idx: int = 0) -> Optional[XLine]:
        return self._list.find_line(key, idx)

    def get_all_elements(self) -> XLine:
        return self._list.get_all_elements()

    # ── Владельцы ───────────────────────────────

    def owner_ids(self) -> list[int]:
        return list(self._owner_ids)

    def owners(self) -> list[Cluster]:
        """Кластеры-владельцы (с кратностью), разрешённые через сервер."""
        server = self.get_server()
        return [server.get_cluster_by_id(oid) for oid in self._owner_ids]

    def add_owner(self, key: OwnershipKey, owner: Cluster) -> None:
        _require_key(key)
        self._owner_ids.append(owner.id)

    def remove_owner(self, key: OwnershipKey, owner: Cluster) -> None:
        _require_key(key)
        try:
            self._owner_ids.remove(owner.id)
        except ValueError:
            raise OwnershipInconsistencyError(
                f"cluster {owner.id} is not an owner of {self.kind} {self.id}"
            ) from None

    def remove_all_owners(self, key: OwnershipKey) -> None:
        """Просит каждого владельца удалить этот объект, пока владельцев не останется."""
        _require_key(key)
        server = self.get_server()
        released = len(self._owner_ids)
        while self._owner_ids:
            owner = server.get_cluster_by_id(self._owner_ids[0])
            owner.remove(self)
        if released:
            logger.debug("owners_released", kind=self.kind, entity_id=self.id, owners=released)

    def ancestor_ids(self) -> set[int]:
        """id всех транзитивных владельцев."""
        server = self.get_server()
        seen: set[int] = set()
        stack = list(self._owner_ids)
        while stack:
            oid = stack.pop()
            if oid in seen:
                continue
            seen.add(oid)
            stack.extend(server.get_cluster_by_id(oid).owner_ids())
        return seen

    # ── Статистики ──────────────────────────────

    def contribution(self) -> FrameAccumulator:
        """Вклад в аккумулятор владельца."""
        raise NotImplementedError

    def _propagate(self, delta: FrameAccumulator, sign: int) -> None:
        """Передаёт изменение вклада всем владельцам (по одному разу на вхождение)."""
        if delta.get_count() == 0 and delta.get_dim() is None:
            return
        server = self.get_server()
        for oid in list(self._owner_ids):
            server.get_cluster_by_id(oid)._apply(delta, sign)

    def destroy(self) -> None:
        """Разрывает все связи и снимает объект с регистрации на сервере."""
        self.get_server().remove(self)

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(id={self.id}, label_code={self.label_code}, "
            f"string={self.string!r}, owners={self._owner_ids})"
        )
