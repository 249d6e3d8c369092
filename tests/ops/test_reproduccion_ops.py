"""Tests for ``cuyfarm.ops.reproduccion``."""

from __future__ import annotations

from datetime import timedelta

import pytest

from cuyfarm.core.domain import today
from cuyfarm.core.errors import ValidationError
from cuyfarm.ops import reproduccion as ops
from cuyfarm.ops.requests import ListCamadasRequest, ListPrenecesRequest


def _ago(days: int) -> str:
    return (today() - timedelta(days=days)).isoformat()


def _ahead(days: int) -> str:
    return (today() + timedelta(days=days)).isoformat()


@pytest.fixture()
def pareja(make_cuy):
    madre = make_cuy(sexo="H", galpon="G2", jaula="J4", raza="Andino")
    padre = make_cuy(sexo="M", galpon="G2", jaula="J5", raza="Andino", peso=1.4)
    return madre, padre


class TestCreatePrenez:
    def test_default_due_date_is_seventy_days(self, ctx, pareja):
        madre, padre = pareja
        result = ops.create_prenez(ctx, {"madre_id": madre["id"], "padre_id": padre["id"], "fecha_prenez": _ago(10)})
        assert result.success
        assert result.data["estado"] == "activa"
        assert result.data["fecha_probable_parto"] == _ahead(60)

    def test_unknown_mother(self, ctx):
        result = ops.create_prenez(ctx, {"madre_id": 77, "fecha_prenez": _ago(5)})
        assert result.error.code == "NOT_FOUND"

    def test_mother_must_be_female(self, ctx, pareja):
        _madre, padre = pareja
        result = ops.create_prenez(ctx, {"madre_id": padre["id"], "fecha_prenez": _ago(5)})
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == "madre_id"

    def test_mother_must_be_active(self, ctx, make_cuy):
        vendida = make_cuy(estado="Vendido", fecha_venta=_ago(1))
        result = ops.create_prenez(ctx, {"madre_id": vendida["id"], "fecha_prenez": _ago(5)})
        assert result.error.code == "VALIDATION_FAILED"

    def test_father_must_be_male(self, ctx, pareja, make_cuy):
        madre, _padre = pareja
        otra = make_cuy(sexo="H")
        result = ops.create_prenez(ctx, {"madre_id": madre["id"], "padre_id": otra["id"], "fecha_prenez": _ago(5)})
        assert result.error.details["field"] == "padre_id"

    def test_future_start_rejected(self, ctx, pareja):
        madre, _padre = pareja
        result = ops.create_prenez(ctx, {"madre_id": madre["id"], "fecha_prenez": _ahead(2)})
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["field"] == "fecha_prenez"

    @pytest.mark.parametrize("dias", [40, 90])
    def test_due_date_outside_gestation_window(self, ctx, pareja, dias):
        madre, _padre = pareja
        inicio = today() - timedelta(days=5)
        result = ops.create_prenez(ctx, {
            "madre_id": madre["id"],
            "fecha_prenez": inicio.isoformat(),
            "fecha_probable_parto": (inicio + timedelta(days=dias)).isoformat(),
        })
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details["dias"] == dias

    def test_second_active_pregnancy_conflicts(self, ctx, pareja, make_prenez):
        madre, _padre = pareja
        first = make_prenez(madre["id"])
        result = ops.create_prenez(ctx, {"madre_id": madre["id"], "fecha_prenez": _ago(3)})
        assert result.error.code == "CONFLICT"
        assert result.error.details["prenez_id"] == first["id"]


class TestPrenezLifecycle:
    def test_completar_registers_litter(self, ctx, pareja, make_prenez):
        madre, padre = pareja
        prenez = make_prenez(madre["id"], dias=68, padre_id=padre["id"])
        result = ops.completar_prenez(ctx, prenez["id"], {
            "fecha_nacimiento": _ago(0), "num_vivos": 3, "num_muertos": 1,
            "num_machos": 1, "num_hembras": 2, "crear_cuyes": True,
        })
        assert result.success, result.error
        assert result.data["prenez"]["estado"] == "completada"
        assert result.data["prenez"]["camada_id"] == result.data["camada_id"]
        assert len(result.data["crias"]) == 3

        camada = ops.get_camada(ctx, result.data["camada_id"]).data
        assert camada["madre_id"] == madre["id"]
        assert camada["padre_id"] == padre["id"]
        assert {c["galpon"] for c in camada["crias"]} == {"G2"}
        assert {c["jaula"] for c in camada["crias"]} == {"J4"}
        assert all(c["peso"] == 0.08 and c["etapa_vida"] == "Cría" for c in camada["crias"])

    def test_completar_twice_conflicts(self, ctx, pareja, make_prenez):
        madre, _padre = pareja
        prenez = make_prenez(madre["id"], dias=68)
        camada = {"fecha_nacimiento": _ago(0), "num_vivos": 2}
        assert ops.completar_prenez(ctx, prenez["id"], camada).success
        assert ops.completar_prenez(ctx, prenez["id"], camada).error.code == "CONFLICT"

    def test_invalid_litter_leaves_pregnancy_active(self, ctx, pareja, make_prenez):
        madre, _padre = pareja
        prenez = make_prenez(madre["id"], dias=68)
        result = ops.completar_prenez(ctx, prenez["id"], {"fecha_nacimiento": _ago(0), "num_vivos": 0})
        assert result.error.code == "VALIDATION_FAILED"
        assert ops.get_prenez(ctx, prenez["id"]).data["estado"] == "activa"

    def test_marcar_fallida(self, ctx, pareja, make_prenez):
        madre, _padre = pareja
        prenez = make_prenez(madre["id"])
        result = ops.marcar_fallida(ctx, prenez["id"])
        assert result.data["estado"] == "fallida"
        assert result.data["fecha_completada"]
        assert ops.marcar_fallida(ctx, prenez["id"]).error.code == "CONFLICT"

    def test_failed_pregnancy_frees_the_mother(self, ctx, pareja, make_prenez):
        madre, _padre = pareja
        prenez = make_prenez(madre["id"])
        ops.marcar_fallida(ctx, prenez["id"])
        assert ops.create_prenez(ctx, {"madre_id": madre["id"], "fecha_prenez": _ago(1)}).success

    def test_update_recomputes_due_date(self, ctx, pareja, make_prenez):
        madre, _padre = pareja
        prenez = make_prenez(madre["id"], dias=30)
        updated = ops.update_prenez(ctx, prenez["id"], {"fecha_prenez": _ago(20)}).data
        assert updated["fecha_probable_parto"] == _ahead(50)


class TestPrenezQueries:
    def test_proximos_partos(self, ctx, make_cuy, make_prenez):
        pronto = make_prenez(make_cuy()["id"], dias=66)
        make_prenez(make_cuy()["id"], dias=10)
        rows = ops.proximos_partos(ctx, dias=7).data
        assert [r["id"] for r in rows] == [pronto["id"]]
        assert rows[0]["dias_restantes"] == 4

    def test_list_by_estado(self, ctx, make_cuy, make_prenez):
        activa = make_prenez(make_cuy()["id"])
        fallida = make_prenez(make_cuy()["id"])
        ops.marcar_fallida(ctx, fallida["id"])
        page = ops.list_preneces(ctx, ListPrenecesRequest(estado="activa"))
        assert [p["id"] for p in page.data] == [activa["id"]]

    def test_list_rejects_inverted_range(self, ctx):
        page = ops.list_preneces(ctx, ListPrenecesRequest(fecha_desde="2025-02-01", fecha_hasta="2025-01-01"))
        assert not page.success

    def test_madres_elegibles(self, ctx, make_cuy, make_prenez):
        lista = make_cuy()
        make_prenez(lista["id"], dias=62)
        make_prenez(make_cuy()["id"], dias=20)
        elegibles = ops.madres_elegibles(ctx).data
        assert [e["madre"]["id"] for e in elegibles] == [lista["id"]]
        assert elegibles[0]["estado_gestacion"] == "Normal"

    def test_estadisticas(self, ctx, make_cuy, make_prenez):
        a = make_prenez(make_cuy()["id"], dias=68)
        b = make_prenez(make_cuy()["id"], dias=20)
        ops.completar_prenez(ctx, a["id"], {"fecha_nacimiento": _ago(0), "num_vivos": 4})
        ops.marcar_fallida(ctx, b["id"])

        stats = ops.estadisticas_reproduccion(ctx).data
        assert stats["resumen"]["total_preneces"] == 2
        assert stats["resumen"]["total_camadas"] == 1
        assert stats["promedios"]["tasa_exito"] == 50.0
        assert stats["promedios"]["vivos_por_camada"] == 4.0

    def test_estadisticas_madre(self, ctx, pareja, make_prenez):
        madre, _padre = pareja
        prenez = make_prenez(madre["id"], dias=68)
        ops.completar_prenez(ctx, prenez["id"], {"fecha_nacimiento": _ago(0), "num_vivos": 2, "num_muertos": 1})
        stats = ops.estadisticas_madre(ctx, madre["id"]).data
        assert stats["total_camadas"] == 1
        assert stats["total_crias"] == 3
        assert stats["tasa_exito"] == 100.0

    def test_validar_gestacion(self, ctx):
        result = ops.validar_gestacion(ctx, "2025-01-01", "2025-03-10").data
        assert result["dias"] == 68
        assert result["estado"] == "Normal"
        assert ops.validar_gestacion(ctx, "2025-03-10", "2025-01-01").error.code == "VALIDATION_FAILED"


class TestCompatibilidad:
    def test_good_pair(self, ctx, pareja):
        madre, padre = pareja
        result = ops.verificar_compatibilidad(ctx, madre["id"], padre["id"]).data
        assert result["compatible"] is True
        assert result["score"] == 100
        assert result["nivel"] == "Excelente"

    def test_same_sex_is_incompatible(self, ctx, make_cuy):
        a, b = make_cuy(sexo="H"), make_cuy(sexo="H")
        result = ops.verificar_compatibilidad(ctx, a["id"], b["id"]).data
        assert result["compatible"] is False
        assert "padre is not male" in result["motivos"]

    def test_missing_animal(self, ctx, make_cuy):
        assert ops.verificar_compatibilidad(ctx, make_cuy()["id"], 999).error.code == "NOT_FOUND"


class TestCamadas:
    def test_validar_camada_rules(self):
        with pytest.raises(ValidationError):
            ops.validar_camada({"fecha_nacimiento": _ahead(1), "num_vivos": 2})
        with pytest.raises(ValidationError):
            ops.validar_camada({"fecha_nacimiento": _ago(400), "num_vivos": 2})
        with pytest.raises(ValidationError):
            ops.validar_camada({"fecha_nacimiento": _ago(1), "num_vivos": 21})
        with pytest.raises(ValidationError):
            ops.validar_camada({"fecha_nacimiento": _ago(1), "num_vivos": 2, "madre_id": 1, "padre_id": 1})
        with pytest.raises(ValidationError):
            ops.validar_camada(
                {"fecha_nacimiento": _ago(1), "num_vivos": 3, "num_machos": 1, "num_hembras": 1},
                crear_cuyes=True,
            )
        ops.validar_camada({"fecha_nacimiento": _ago(1), "num_vivos": 3, "num_machos": 1, "num_hembras": 2},
                           crear_cuyes=True)

    def test_create_without_offspring(self, ctx, pareja):
        madre, _padre = pareja
        result = ops.create_camada(ctx, {"fecha_nacimiento": _ago(2), "num_vivos": 4, "madre_id": madre["id"]})
        assert result.success
        assert result.data["crias_creadas"] == []
        assert result.data["num_muertos"] == 0

    def test_edit_litter_older_than_a_year(self, ctx, conn):
        camada = ops.create_camada(ctx, {"fecha_nacimiento": _ago(10), "num_vivos": 3}).data
        conn.execute("UPDATE camadas SET fecha_nacimiento = ? WHERE id = ?", (_ago(400), camada["id"]))
        conn.commit()

        result = ops.update_camada(ctx, camada["id"], {"num_muertos": 1})
        assert result.success, result.error
        assert result.data["num_muertos"] == 1
        assert result.data["fecha_nacimiento"] == _ago(400)

    def test_edit_still_checks_new_birth_date_and_counts(self, ctx):
        camada = ops.create_camada(ctx, {"fecha_nacimiento": _ago(10), "num_vivos": 3}).data
        result = ops.update_camada(ctx, camada["id"], {"fecha_nacimiento": _ago(400)})
        assert result.error.code == "VALIDATION_FAILED"
        assert result.error.details == {"field": "fecha_nacimiento"}
        assert ops.update_camada(ctx, camada["id"], {"num_vivos": 25}).error.code == "VALIDATION_FAILED"

    def test_delete_unlinks_offspring(self, ctx, pareja):
        madre, _padre = pareja
        camada = ops.create_camada(ctx, {
            "fecha_nacimiento": _ago(2), "num_vivos": 2, "num_machos": 2,
            "madre_id": madre["id"], "crear_cuyes": True,
        }).data
        result = ops.delete_camada(ctx, camada["id"]).data
        assert result["cuyes_desvinculados"] == 2
        assert ops.get_camada(ctx, camada["id"]).error.code == "NOT_FOUND"

    def test_bulk_delete(self, ctx):
        ids = [
            ops.create_camada(ctx, {"fecha_nacimiento": _ago(3), "num_vivos": 1}).data["id"]
            for _ in range(2)
        ]
        result = ops.bulk_delete_camadas(ctx, [*ids, 999, ids[0]]).data
        assert result["deleted"] == ids
        assert result["not_found"] == [999]
        assert ops.list_camadas(ctx, ListCamadasRequest()).total == 0

    def test_bulk_delete_requires_ids(self, ctx):
        assert ops.bulk_delete_camadas(ctx, []).error.code == "VALIDATION_FAILED"

    def test_estadisticas_camadas(self, ctx):
        ops.create_camada(ctx, {"fecha_nacimiento": _ago(5), "num_vivos": 3, "num_muertos": 1,
                                "num_machos": 2, "num_hembras": 1})
        ops.create_camada(ctx, {"fecha_nacimiento": _ago(200), "num_vivos": 5})
        stats = ops.estadisticas_camadas(ctx, dias=30).data
        assert stats["total_camadas"] == 1
        assert stats["tasa_supervivencia"] == 75.0
        assert ops.estadisticas_camadas(ctx, dias=0).error.code == "VALIDATION_FAILED"
