"""Pregnancy (preñez) and litter (camada) repositories."""

from __future__ import annotations

from typing import Any

from cuyfarm.core.repository import BaseRepository, _build_where


class PrenezRepository(BaseRepository):
    """CRUD and queries for the ``prenez`` table."""

    TABLE = "prenez"

    def list_preneces(
        self,
        *,
        estado: str | None = None,
        madre_id: int | None = None,
        fecha_desde: str | None = None,
        fecha_hasta: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        clauses: list[str] = []
        extra: list[Any] = []
        if fecha_desde:
            clauses.append("fecha_prenez >= ?")
            extra.append(fecha_desde)
        if fecha_hasta:
            clauses.append("fecha_prenez <= ?")
            extra.append(fecha_hasta)
        if search:
            clauses.append("(notas LIKE ? OR CAST(madre_id AS TEXT) = ? OR CAST(padre_id AS TEXT) = ?)")
            extra.extend([f"%{search}%", search, search])
        where, params = _build_where(
            {"estado": estado, "madre_id": madre_id},
            extra_clauses=clauses,
            extra_params=tuple(extra),
        )
        return self.paginate(
            where, params, order_by="fecha_prenez DESC, id DESC", limit=limit, offset=offset,
        )

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def activas(self) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM prenez WHERE estado = 'activa' ORDER BY fecha_probable_parto ASC"
        )

    def activa_de_madre(self, madre_id: int) -> dict[str, Any] | None:
        return self.query_one(
            "SELECT * FROM prenez WHERE madre_id = ? AND estado = 'activa'", (madre_id,)
        )

    def partos_entre(self, desde: str, hasta: str) -> list[dict[str, Any]]:
        """Active pregnancies due in ``[desde, hasta]``, soonest first."""
        return self.query(
            "SELECT * FROM prenez WHERE estado = 'activa' "
            "AND fecha_probable_parto >= ? AND fecha_probable_parto <= ? "
            "ORDER BY fecha_probable_parto ASC",
            (desde, hasta),
        )

    def activas_desde_antes_de(self, fecha: str) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM prenez WHERE estado = 'activa' AND fecha_prenez <= ? "
            "ORDER BY fecha_prenez ASC",
            (fecha,),
        )

    def vencidas(self, hoy: str) -> int:
        return self.count("estado = 'activa' AND fecha_probable_parto < ?", (hoy,))

    def madres_con_prenez_desde(self, fecha: str) -> set[int]:
        rows = self.query("SELECT DISTINCT madre_id FROM prenez WHERE fecha_prenez >= ?", (fecha,))
        return {int(r["madre_id"]) for r in rows}

    def counts_by_estado(self, madre_id: int | None = None) -> dict[str, int]:
        where, params = _build_where({"madre_id": madre_id})
        rows = self.query(
            f"SELECT estado, COUNT(*) AS total FROM prenez WHERE {where} GROUP BY estado", params,
        )
        return {r["estado"]: int(r["total"]) for r in rows}


class CamadaRepository(BaseRepository):
    """CRUD and statistics for the ``camadas`` table."""

    TABLE = "camadas"

    def list_camadas(
        self,
        *,
        madre_id: int | None = None,
        padre_id: int | None = None,
        fecha_desde: str | None = None,
        fecha_hasta: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        clauses: list[str] = []
        extra: list[Any] = []
        if fecha_desde:
            clauses.append("fecha_nacimiento >= ?")
            extra.append(fecha_desde)
        if fecha_hasta:
            clauses.append("fecha_nacimiento <= ?")
            extra.append(fecha_hasta)
        where, params = _build_where(
            {"madre_id": madre_id, "padre_id": padre_id},
            extra_clauses=clauses,
            extra_params=tuple(extra),
        )
        return self.paginate(
            where, params, order_by="fecha_nacimiento DESC, id DESC", limit=limit, offset=offset,
        )

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def desde(self, fecha: str) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM camadas WHERE fecha_nacimiento >= ? ORDER BY fecha_nacimiento",
            (fecha,),
        )

    def between(self, desde: str, hasta: str) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM camadas WHERE fecha_nacimiento >= ? AND fecha_nacimiento <= ? "
            "ORDER BY fecha_nacimiento",
            (desde, hasta),
        )

    def all(self) -> list[dict[str, Any]]:
        return self.query("SELECT * FROM camadas ORDER BY fecha_nacimiento")

    def by_parent(self, column: str, cuy_id: int) -> list[dict[str, Any]]:
        if column not in ("madre_id", "padre_id"):
            raise ValueError(f"Unknown parent column: {column}")
        return self.query(
            f"SELECT * FROM camadas WHERE {column} = ? ORDER BY fecha_nacimiento DESC",
            (cuy_id,),
        )

    def detach_prenez(self, camada_id: int) -> None:
        self.execute("UPDATE prenez SET camada_id = NULL WHERE camada_id = ?", (camada_id,))
