"""Animal (cuy) repository."""

from __future__ import annotations

from typing import Any

from cuyfarm.core.repository import BaseRepository, _build_where

# Animals that still occupy space on the farm
_PRESENT = "estado NOT IN ('Vendido', 'Fallecido')"


class CuyRepository(BaseRepository):
    """CRUD and aggregate queries for the ``cuyes`` table."""

    TABLE = "cuyes"

    def list_cuyes(
        self,
        *,
        galpon: str | None = None,
        jaula: str | None = None,
        raza: str | None = None,
        sexo: str | None = None,
        estado: str | None = None,
        etapa_vida: str | None = None,
        proposito: str | None = None,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> tuple[list[dict[str, Any]], int]:
        """List animals with filters.  Returns ``(rows, total)``."""
        clauses: list[str] = []
        extra: tuple = ()
        if search:
            like = f"%{search.strip()}%"
            clauses.append(
                "(raza LIKE ? OR galpon LIKE ? OR jaula LIKE ? OR CAST(id AS TEXT) = ?)"
            )
            extra = (like, like, like, search.strip())
        where, params = _build_where(
            {
                "galpon": galpon,
                "jaula": jaula,
                "raza": raza,
                "sexo": sexo,
                "estado": estado,
                "etapa_vida": etapa_vida,
                "proposito": proposito,
            },
            extra_clauses=clauses,
            extra_params=extra,
        )
        return self.paginate(where, params, limit=limit, offset=offset)

    def create(self, data: dict[str, Any]) -> int:
        return self.insert(self.TABLE, data)

    def update_cuy(self, cuy_id: int, updates: dict[str, Any]) -> None:
        self.update(self.TABLE, cuy_id, updates)

    # -- Location / capacity ----------------------------------------------

    def count_in_jaula(self, galpon: str, jaula: str) -> int:
        return self.count(f"galpon = ? AND jaula = ? AND {_PRESENT}", (galpon, jaula))

    def count_in_galpon(self, galpon: str) -> int:
        return self.count(f"galpon = ? AND {_PRESENT}", (galpon,))

    def active_counts_by_galpon(self) -> list[dict[str, Any]]:
        """Active animals per shed: ``[{galpon, total}]``."""
        return self.query(
            "SELECT galpon, COUNT(*) AS total FROM cuyes "
            "WHERE estado = 'Activo' GROUP BY galpon ORDER BY galpon"
        )

    def distinct_galpones(self) -> list[str]:
        return [r["galpon"] for r in self.query("SELECT DISTINCT galpon FROM cuyes ORDER BY galpon")]

    # -- Litters -----------------------------------------------------------

    def list_by_camada(self, camada_id: int) -> list[dict[str, Any]]:
        return self.query("SELECT * FROM cuyes WHERE camada_id = ? ORDER BY id", (camada_id,))

    def clear_camada(self, camada_id: int) -> int:
        """Detach animals from a litter.  Returns how many were detached."""
        affected = self.count("camada_id = ?", (camada_id,))
        self.execute("UPDATE cuyes SET camada_id = NULL WHERE camada_id = ?", (camada_id,))
        return affected

    # -- Reproduction ------------------------------------------------------

    def reproductoras_activas(self) -> list[dict[str, Any]]:
        return self.query(
            "SELECT * FROM cuyes WHERE sexo = 'H' AND etapa_vida = 'Reproductora' "
            "AND estado = 'Activo' ORDER BY id"
        )

    # -- Statistics --------------------------------------------------------

    def count_where(self, where: str, params: tuple = ()) -> int:
        return self.count(where, params)

    def raza_counts(self) -> list[dict[str, Any]]:
        return self.query(
            "SELECT raza, COUNT(*) AS total FROM cuyes WHERE estado != 'Vendido' "
            "GROUP BY raza ORDER BY total DESC"
        )

    def active_weights(self) -> list[float]:
        rows = self.query("SELECT peso FROM cuyes WHERE estado = 'Activo'")
        return [float(r["peso"] or 0) for r in rows]

    def etapa_distribution(self) -> list[dict[str, Any]]:
        return self.query(
            f"SELECT etapa_vida, COUNT(*) AS cantidad FROM cuyes WHERE {_PRESENT} "
            "GROUP BY etapa_vida ORDER BY cantidad DESC"
        )

    def nacidos_entre(self, desde: str, hasta: str) -> int:
        return self.count("fecha_nacimiento >= ? AND fecha_nacimiento <= ?", (desde, hasta))

    def fallecidos_entre(self, desde: str, hasta: str) -> int:
        return self.count("fecha_fallecimiento >= ? AND fecha_fallecimiento <= ?", (desde, hasta))

    def poblacion_al(self, fecha: str) -> int:
        """Animals born by *fecha* and neither dead nor sold by then."""
        return self.count(
            "fecha_nacimiento <= ? "
            "AND (fecha_fallecimiento IS NULL OR fecha_fallecimiento > ?) "
            "AND (fecha_venta IS NULL OR fecha_venta > ?)",
            (fecha, fecha, fecha),
        )

    def productividad_por_galpon(self, desde: str) -> list[dict[str, Any]]:
        """Births and distinct litters per shed since *desde*."""
        return self.query(
            "SELECT galpon, COUNT(*) AS nacimientos, COUNT(DISTINCT camada_id) AS camadas "
            "FROM cuyes WHERE fecha_nacimiento >= ? GROUP BY galpon ORDER BY galpon",
            (desde,),
        )

    def list_present(self, galpon: str | None = None) -> list[dict[str, Any]]:
        where, params = _build_where({"galpon": galpon}, extra_clauses=[_PRESENT])
        return self.query(f"SELECT * FROM cuyes WHERE {where} ORDER BY galpon, jaula, id", params)
