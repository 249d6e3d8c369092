"""Shed (galpón) and cage (jaula) repositories."""

from __future__ import annotations

from typing import Any

from cuyfarm.core.repository import BaseRepository, _build_where


class GalponRepository(BaseRepository):
    """CRUD for the ``galpones`` table."""

    TABLE = "galpones"

    def list_galpones(
        self,
        *,
        estado: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        where, params = _build_where({"estado": estado})
        return self.paginate(where, params, order_by="nombre ASC", limit=limit, offset=offset)

    def get_by_nombre(self, nombre: str) -> dict[str, Any] | None:
        return self.query_one("SELECT * FROM galpones WHERE nombre = ?", (nombre,))

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def capacities(self) -> dict[str, int]:
        """``{nombre: capacidad_maxima}`` for every shed."""
        return {r["nombre"]: int(r["capacidad_maxima"]) for r in self.query(
            "SELECT nombre, capacidad_maxima FROM galpones"
        )}


class JaulaRepository(BaseRepository):
    """CRUD for the ``jaulas`` table."""

    TABLE = "jaulas"

    def list_jaulas(
        self,
        *,
        galpon_id: int | None = None,
        galpon_nombre: str | None = None,
        estado: str | None = None,
        tipo: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        where, params = _build_where({
            "galpon_id": galpon_id,
            "galpon_nombre": galpon_nombre,
            "estado": estado,
            "tipo": tipo,
        })
        return self.paginate(
            where, params, order_by="galpon_nombre ASC, nombre ASC", limit=limit, offset=offset,
        )

    def get_by_ubicacion(self, galpon: str, jaula: str) -> dict[str, Any] | None:
        return self.query_one(
            "SELECT * FROM jaulas WHERE galpon_nombre = ? AND nombre = ?",
            (galpon, jaula),
        )

    def by_galpon(self, galpon_nombre: str) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM jaulas WHERE galpon_nombre = ? ORDER BY nombre", (galpon_nombre,)
        )

    def rename_galpon(self, old: str, new: str) -> None:
        self.execute("UPDATE jaulas SET galpon_nombre = ? WHERE galpon_nombre = ?", (new, old))

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)
