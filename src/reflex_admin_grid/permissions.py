"""Read/write permission matrix for the ``permissions`` field type."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, Literal

from reflex_admin_grid.models import Module

PermissionKind = Literal["read", "write"]


@dataclass
class Permission:
    module_id: str
    name: str
    read: bool = False
    write: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Wire format expected by the roles API."""
        return {"moduleId": self.module_id, "name": self.name, "read": self.read, "write": self.write}

    @classmethod
    def from_value(cls, value: "Permission | Mapping[str, Any]") -> "Permission":
        if isinstance(value, Permission):
            return cls(value.module_id, value.name, value.read, value.write)
        module_id = value.get("moduleId", value.get("module_id"))
        return cls(
            module_id=str(module_id),
            name=str(value.get("name", "")),
            read=bool(value.get("read", False)),
            write=bool(value.get("write", False)),
        )


class PermissionsMatrix:
    """One ``{module_id, read, write}`` row per module.

    The emitted :attr:`value` only lists modules with at least one flag
    set; modules with both flags off are omitted, not sent as ``False``.
    """

    def __init__(
        self,
        modules: Iterable[Module],
        value: Iterable[Permission | Mapping[str, Any]] | None = None,
        *,
        disabled: bool = False,
    ) -> None:
        self.modules: tuple[Module, ...] = tuple(modules)
        self.disabled = disabled
        self._rows: dict[str, Permission] = {}
        self.write_value(value)

    def write_value(self, value: Iterable[Permission | Mapping[str, Any]] | None) -> None:
        """Reset the matrix from an incoming value (e.g. a role being edited)."""
        provided = {p.module_id: p for p in (Permission.from_value(v) for v in value or ())}
        self._rows = {}
        for module in self.modules:
            row = provided.get(module.id)
            if row is None:
                row = Permission(module_id=module.id, name=module.name)
            elif not row.name:
                row.name = module.name
            self._rows[module.id] = row

    @property
    def rows(self) -> list[Permission]:
        return list(self._rows.values())

    def get(self, module_id: str, kind: PermissionKind) -> bool:
        row = self._rows.get(module_id)
        if row is None:
            return False
        return row.read if kind == "read" else row.write

    def toggle(self, module_id: str, kind: PermissionKind, checked: bool | None = None) -> bool:
        """Set (or flip, when *checked* is ``None``) one flag.

        Returns ``False`` when nothing changed: disabled matrix or a
        module that was never provided.
        """
        if self.disabled or module_id not in self._rows:
            return False
        if kind not in ("read", "write"):
            raise ValueError(f"Permission kind must be 'read' or 'write', got {kind!r}")
        row = self._rows[module_id]
        if checked is None:
            checked = not self.get(module_id, kind)
        setattr(row, kind, bool(checked))
        return True

    @property
    def value(self) -> list[dict[str, Any]]:
        return [row.to_dict() for row in self._rows.values() if row.read or row.write]
