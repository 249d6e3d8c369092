"""Tests for ``cuyfarm.ops.cuyes``: animal CRUD, stats, purpose and cage registration."""

from __future__ import annotations

import random
from datetime import timedelta
from unittest.mock import Mock

from cuyfarm.core.domain import today
from cuyfarm.ops import cuyes as ops
from cuyfarm.ops.requests import (
    CambiarPropositoRequest,
    GrupoJaula,
    ListCuyesRequest,
    RegistrarJaulaRequest,
)


def _ago(days: int) -> str:
    return (today() - timedelta(days=days)).isoformat()


class TestCreateCuy:
    def test_derives_stage_and_purpose(self, make_cuy):
        hembra = make_cuy(fecha_nacimiento=_ago(250), sexo="H")
        assert hembra["etapa_vida"] == "Reproductora"
        assert hembra["proposito"] == "Reproducción"
        assert hembra["estado"] == "Activo"

        cria = make_cuy(fecha_nacimiento=_ago(20), sexo="M")
        assert cria["etapa_vida"] == "Cría"
        assert cria["proposito"] == "Indefinido"

    def test_explicit_stage_is_kept(self, make_cuy):
        cuy = make_cuy(etapa_vida="Engorde", proposito="Venta")
        assert cuy["etapa_vida"] == "Engorde"
        assert cuy["proposito"] == "Venta"

    def test_future_birth_rejected(self, ctx):
        result = ops.create_cuy(ctx, {
            "raza": "Andino", "fecha_nacimiento": (today() + timedelta(days=3)).isoformat(),
            "sexo": "M", "peso": 1.0, "galpon": "G1", "jaula": "J1",
        })
        assert not result.success
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == "fecha_nacimiento"

    def test_weight_out_of_range(self, ctx):
        result = ops.create_cuy(ctx, {
            "raza": "Andino", "fecha_nacimiento": _ago(10),
            "sexo": "M", "peso": 6.5, "galpon": "G1", "jaula": "J1",
        })
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == "peso"

    def test_vendido_requires_fecha_venta(self, ctx):
        result = ops.create_cuy(ctx, {
            "raza": "Inti", "fecha_nacimiento": _ago(100), "sexo": "M", "peso": 1.0,
            "galpon": "G1", "jaula": "J1", "estado": "Vendido",
        })
        assert result.error.code == "VALIDATION_FAILED"

    def test_missing_required_column_is_validation(self, ctx):
        result = ops.create_cuy(ctx, {"raza": "Inti", "fecha_nacimiento": _ago(100), "sexo": "M", "peso": 1.0})
        assert not result.success
        assert result.error.code == "VALIDATION_FAILED"


class TestUpdateDeleteCuy:
    def test_partial_update(self, ctx, make_cuy):
        cuy = make_cuy()
        result = ops.update_cuy(ctx, cuy["id"], {"peso": 1.5, "notas": "ok"})
        assert result.success
        assert result.data["peso"] == 1.5
        assert result.data["raza"] == "Peruano"

    def test_sex_change_rederives_stage(self, ctx, make_cuy):
        cuy = make_cuy(sexo="H")
        result = ops.update_cuy(ctx, cuy["id"], {"sexo": "M"})
        assert result.data["etapa_vida"] == "Engorde"
        assert result.data["proposito"] == "Engorde"

    def test_fallecido_requires_date(self, ctx, make_cuy):
        cuy = make_cuy()
        assert ops.update_cuy(ctx, cuy["id"], {"estado": "Fallecido"}).error.code == "VALIDATION_FAILED"
        ok = ops.update_cuy(ctx, cuy["id"], {"estado": "Fallecido", "fecha_fallecimiento": _ago(1)})
        assert ok.success

    def test_update_missing(self, ctx):
        assert ops.update_cuy(ctx, 999, {"peso": 1.0}).error.code == "NOT_FOUND"

    def test_delete(self, ctx, make_cuy):
        cuy = make_cuy()
        assert ops.delete_cuy(ctx, cuy["id"]).data == {"id": cuy["id"], "deleted": True}
        assert ops.get_cuy(ctx, cuy["id"]).error.code == "NOT_FOUND"

    def test_delete_mother_with_pregnancy_is_fk_error(self, ctx, make_cuy, make_prenez):
        madre = make_cuy()
        make_prenez(madre["id"])
        result = ops.delete_cuy(ctx, madre["id"])
        assert not result.success
        assert result.error.code == "FOREIGN_KEY"


class TestListCuyes:
    def test_filters_and_search(self, ctx, make_cuy):
        make_cuy(raza="Andino", galpon="A", jaula="1")
        make_cuy(raza="Peruano", galpon="B", jaula="2", sexo="M")
        make_cuy(raza="Peruano", galpon="B", jaula="3")

        by_galpon = ops.list_cuyes(ctx, ListCuyesRequest(galpon="B"))
        assert by_galpon.total == 2

        by_sexo = ops.list_cuyes(ctx, ListCuyesRequest(sexo="M"))
        assert [c["galpon"] for c in by_sexo.data] == ["B"]

        search = ops.list_cuyes(ctx, ListCuyesRequest(search="andi"))
        assert search.total == 1

    def test_pagination(self, ctx, make_cuy):
        for _ in range(5):
            make_cuy()
        page = ops.list_cuyes(ctx, ListCuyesRequest(limit=2, offset=2))
        assert page.total == 5
        assert len(page.data) == 2
        assert page.has_more is True


class TestCuyesStats:
    def test_counts(self, ctx, make_cuy):
        make_cuy(sexo="H", raza="Andino")
        make_cuy(sexo="M", raza="Andino")
        make_cuy(sexo="M", fecha_nacimiento=_ago(15))
        make_cuy(sexo="M", estado="Vendido", fecha_venta=_ago(1))

        stats = ops.cuyes_stats(ctx).data
        assert stats["total"] == 4
        assert stats["machos"] == 2
        assert stats["hembras"] == 1
        assert stats["crias"] == 1
        assert stats["adultos"] == 2
        assert stats["razas"][0] == {"raza": "Andino", "total": 2}


class TestCambiarProposito:
    def test_too_young(self, ctx, make_cuy):
        cuy = make_cuy(fecha_nacimiento=_ago(30))
        result = ops.cambiar_proposito(ctx, CambiarPropositoRequest(cuy_id=cuy["id"], proposito="Engorde"))
        assert result.error.code == "VALIDATION_FAILED"

    def test_male_breeding_needs_four_months(self, ctx, make_cuy):
        macho = make_cuy(sexo="M", fecha_nacimiento=_ago(100))
        result = ops.cambiar_proposito(ctx, CambiarPropositoRequest(cuy_id=macho["id"], proposito="Reproducción"))
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["edad_meses"] == 3

    def test_female_breeding_at_three_months(self, ctx, make_cuy):
        hembra = make_cuy(sexo="H", fecha_nacimiento=_ago(100))
        result = ops.cambiar_proposito(
            ctx, CambiarPropositoRequest(cuy_id=hembra["id"], proposito="Reproducción", etapa_vida="Reproductora"),
        )
        assert result.success
        assert result.data["proposito"] == "Reproducción"
        assert result.data["etapa_vida"] == "Reproductora"

    def test_unknown_animal(self, ctx):
        result = ops.cambiar_proposito(ctx, CambiarPropositoRequest(cuy_id=42, proposito="Venta"))
        assert result.error.code == "NOT_FOUND"


class TestRegistrarJaula:
    def _request(self, *grupos: GrupoJaula) -> RegistrarJaulaRequest:
        return RegistrarJaulaRequest(galpon="G1", jaula="J9", raza="Mejorado", grupos=list(grupos))

    def test_creates_every_unit(self, ctx):
        request = self._request(
            GrupoJaula(sexo="H", cantidad=3, edad_dias=120, peso_promedio=900),
            GrupoJaula(sexo="M", cantidad=2, edad_dias=10, peso_promedio=150),
        )
        result = ops.registrar_jaula(ctx, request, rng=random.Random(7))
        assert result.success
        assert result.data["total"] == 5
        cuyes = [ops.get_cuy(ctx, i).data for i in result.data["ids"]]
        hembras = [c for c in cuyes if c["sexo"] == "H"]
        assert {c["etapa_vida"] for c in hembras} == {"Reproductora"}
        assert all(0.05 <= c["peso"] <= 5.0 for c in cuyes)
        assert all(c["raza"] == "Mejorado" for c in cuyes)

    def test_jittered_weight_stays_in_range(self, ctx):
        request = self._request(
            GrupoJaula(sexo="M", cantidad=2, edad_dias=400, peso_promedio=4990, variacion_peso=200),
            GrupoJaula(sexo="H", cantidad=2, edad_dias=1, peso_promedio=60, variacion_peso=200),
        )
        upper = Mock(uniform=lambda a, b: b)
        lower = Mock(uniform=lambda a, b: a)
        heavy = ops.registrar_jaula(ctx, request, rng=upper).data["ids"]
        light = ops.registrar_jaula(ctx, request, rng=lower).data["ids"]
        assert [ops.get_cuy(ctx, i).data["peso"] for i in heavy] == [5.0, 5.0, 0.26, 0.26]
        assert [ops.get_cuy(ctx, i).data["peso"] for i in light] == [4.79, 4.79, 0.05, 0.05]

    def test_rejects_when_cage_is_full(self, ctx, make_cuy):
        for _ in range(8):
            make_cuy(galpon="G1", jaula="J9")
        request = self._request(GrupoJaula(sexo="H", cantidad=3, edad_dias=60, peso_promedio=500))
        result = ops.registrar_jaula(ctx, request, rng=random.Random(1))
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["faltantes"] == 1
        assert ops.list_cuyes(ctx, ListCuyesRequest(jaula="J9")).total == 8

    def test_sold_animals_do_not_take_room(self, ctx, make_cuy):
        for _ in range(10):
            make_cuy(galpon="G1", jaula="J9", estado="Vendido", fecha_venta=_ago(2))
        request = self._request(GrupoJaula(sexo="M", cantidad=1, edad_dias=60, peso_promedio=500))
        assert ops.registrar_jaula(ctx, request).success
