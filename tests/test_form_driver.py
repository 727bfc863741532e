"""
Tests for the search form driver.
"""

import pytest

from seacewatch.core.backends.base import ElementNotFound, ResultsTimeout
from seacewatch.core.config import ExtractionParams, PortalConfig
from seacewatch.core.portals.base import FilterField, TabInfo
from seacewatch.core.portals.form_driver import FormDriver
from tests.fakes import FakeSearchPage, make_pages


@pytest.fixture
def portal() -> PortalConfig:
    return PortalConfig()


@pytest.fixture
def params() -> ExtractionParams:
    return ExtractionParams(year=2025, keywords=["software", "sistema"], contract_object="servicio")


class TestConfigure:
    @pytest.mark.asyncio
    async def test_sets_every_filter_and_submits(self, portal, params):
        page = FakeSearchPage(make_pages(5, 5))
        driver = FormDriver(page, portal)

        report = await driver.configure(params, results_timeout_ms=1000)

        assert page.activated == [0]
        assert page.filters == {
            FilterField.CONTRACT_OBJECT: "65",
            FilterField.YEAR: "2025",
            FilterField.DATE_FROM: "01/01/2025",
            FilterField.DATE_TO: "31/12/2025",
            FilterField.KEYWORDS: "software sistema",
        }
        assert page.submitted
        assert report.failed == {}
        assert "tab" in report.applied

    @pytest.mark.asyncio
    async def test_optional_filters_when_given(self, portal):
        params = ExtractionParams(year=2025, entidad="MUNICIPALIDAD DE LIMA", tipoProceso="Licitación Pública")
        page = FakeSearchPage(make_pages(5, 5))

        await FormDriver(page, portal).configure(params, results_timeout_ms=1000)

        assert page.filters[FilterField.ENTITY] == "MUNICIPALIDAD DE LIMA"
        assert page.filters[FilterField.PROCESS_TYPE] == "Licitación Pública"

    @pytest.mark.asyncio
    async def test_missing_controls_are_skipped(self, portal, params):
        page = FakeSearchPage(
            make_pages(5, 5),
            unsupported={FilterField.YEAR},
            failing_filters={FilterField.DATE_FROM},
        )

        report = await FormDriver(page, portal).configure(params, results_timeout_ms=1000)

        assert page.submitted
        assert set(report.failed) == {"year", "date_from"}
        assert FilterField.KEYWORDS in page.filters

    @pytest.mark.asyncio
    async def test_readback_mismatch_only_warns(self, portal, params):
        page = FakeSearchPage(make_pages(5, 5), readback={FilterField.KEYWORDS: "otra cosa"})

        report = await FormDriver(page, portal).configure(params, results_timeout_ms=1000)

        assert "keywords" in report.applied
        assert report.failed == {}

    @pytest.mark.asyncio
    async def test_submit_failure_is_fatal(self, portal, params):
        page = FakeSearchPage(make_pages(5, 5), submit_ok=False)

        with pytest.raises(ElementNotFound):
            await FormDriver(page, portal).configure(params, results_timeout_ms=1000)

    @pytest.mark.asyncio
    async def test_results_timeout_is_fatal(self, portal, params):
        page = FakeSearchPage(make_pages(5, 5), results_ready=False)

        with pytest.raises(ResultsTimeout):
            await FormDriver(page, portal).configure(params, results_timeout_ms=1000)


class TestTabs:
    @pytest.mark.asyncio
    async def test_active_tab_is_left_alone(self, portal):
        page = FakeSearchPage([], tabs=[TabInfo(0, "Buscador de Procedimientos", True)])

        assert await FormDriver(page, portal).select_results_tab()
        assert page.activated == []

    @pytest.mark.asyncio
    async def test_falls_back_to_first_inactive_tab(self, portal):
        page = FakeSearchPage([], tabs=[TabInfo(0, "Inicio", True), TabInfo(1, "Consultas", False)])

        assert await FormDriver(page, portal).select_results_tab()
        assert page.activated == [1]

    @pytest.mark.asyncio
    async def test_no_tabs_is_a_warning(self, portal):
        page = FakeSearchPage([], tabs=[])
        driver = FormDriver(page, portal)

        assert not await driver.select_results_tab()
        assert "tab" in driver.report.failed


class TestContractObject:
    @pytest.mark.parametrize(
        "value, code",
        [
            ("servicio", "65"),
            ("Consultoría", "63"),
            ("BIEN", "62"),
            ("servicios", "65"),
            ("64", "64"),
        ],
    )
    def test_resolve(self, portal, value, code):
        driver = FormDriver(FakeSearchPage([]), portal)

        assert driver.resolve_contract_object(value) == code

    def test_unknown_value(self, portal):
        driver = FormDriver(FakeSearchPage([]), portal)

        assert driver.resolve_contract_object("xyz") is None

    @pytest.mark.asyncio
    async def test_unknown_value_is_skipped(self, portal):
        page = FakeSearchPage([])
        driver = FormDriver(page, portal)

        assert not await driver.set_contract_object_type("xyz")
        assert FilterField.CONTRACT_OBJECT not in page.filters
        assert "contract_object" in driver.report.failed
