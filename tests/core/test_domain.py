"""Tests for cuyfarm.core.domain: age, stage and gestation rules."""

from __future__ import annotations

from datetime import date, datetime

import pytest

from cuyfarm.core.domain import (
    EtapaVida,
    Proposito,
    clasificar_gestacion,
    edad_en_meses,
    etapa_automatica,
    etapa_por_edad_dias,
    fecha_parto_probable,
    parse_date,
    proposito_automatico,
)

HOY = date(2025, 6, 15)


class TestEdadEnMeses:
    def test_completed_months(self):
        assert edad_en_meses(date(2025, 3, 15), HOY) == 3

    def test_day_not_reached_yet(self):
        assert edad_en_meses(date(2025, 3, 16), HOY) == 2

    def test_across_years(self):
        assert edad_en_meses(date(2024, 6, 1), HOY) == 12

    def test_future_birth_is_zero(self):
        assert edad_en_meses(date(2025, 7, 1), HOY) == 0


class TestEtapaAutomatica:
    def test_cria_under_three_months(self):
        assert etapa_automatica(date(2025, 4, 1), "M", HOY) == EtapaVida.CRIA.value

    def test_juvenil_between_three_and_six(self):
        assert etapa_automatica(date(2025, 2, 1), "H", HOY) == EtapaVida.JUVENIL.value

    def test_adult_male_goes_to_engorde(self):
        assert etapa_automatica(date(2024, 10, 1), "M", HOY) == EtapaVida.ENGORDE.value

    def test_adult_female_is_reproductora(self):
        assert etapa_automatica(date(2024, 10, 1), "H", HOY) == EtapaVida.REPRODUCTORA.value


class TestPropositoAutomatico:
    @pytest.mark.parametrize(
        ("etapa", "esperado"),
        [
            ("Engorde", Proposito.ENGORDE.value),
            ("Reproductora", Proposito.REPRODUCCION.value),
            ("Reproductor", Proposito.REPRODUCCION.value),
            ("Cría", Proposito.INDEFINIDO.value),
        ],
    )
    def test_mapping(self, etapa, esperado):
        assert proposito_automatico(etapa) == esperado


class TestEtapaPorEdadDias:
    def test_newborn(self):
        assert etapa_por_edad_dias(10, "H") == ("Cría", "Cría")

    def test_juvenil(self):
        assert etapa_por_edad_dias(45, "M") == ("Juvenil", "Juvenil")

    def test_female_of_three_months_breeds(self):
        assert etapa_por_edad_dias(95, "H") == ("Reproductora", "Reproducción")

    def test_two_month_female_is_engorde(self):
        assert etapa_por_edad_dias(65, "H") == ("Engorde", "Engorde")

    def test_male_is_engorde(self):
        assert etapa_por_edad_dias(200, "M") == ("Engorde", "Engorde")


class TestClasificarGestacion:
    def test_prematuro(self):
        ev = clasificar_gestacion(55)
        assert ev.estado == "Prematuro"
        assert ev.valida is False

    @pytest.mark.parametrize("dias", [59, 68, 75])
    def test_normal_range(self, dias):
        ev = clasificar_gestacion(dias)
        assert ev.estado == "Normal"
        assert ev.valida is True

    def test_optimum_has_single_recommendation(self):
        assert clasificar_gestacion(68).recomendaciones == ["Gestación dentro del rango normal"]

    def test_tardio(self):
        ev = clasificar_gestacion(78)
        assert ev.estado == "Tardio"
        assert ev.valida is True

    def test_critico(self):
        ev = clasificar_gestacion(81)
        assert ev.estado == "Critico"
        assert ev.valida is False


class TestDates:
    def test_parto_probable_default_seventy_days(self):
        assert fecha_parto_probable(date(2025, 1, 1)) == date(2025, 3, 12)

    def test_parse_date_variants(self):
        assert parse_date("2025-01-02") == date(2025, 1, 2)
        assert parse_date("2025-01-02T10:00:00+00:00") == date(2025, 1, 2)
        assert parse_date(datetime(2025, 1, 2, 8, 0)) == date(2025, 1, 2)
        assert parse_date(None) is None
        assert parse_date("") is None

    def test_parse_date_rejects_garbage(self):
        with pytest.raises(ValueError):
            parse_date("not-a-date")
