import logging
import threading

import pytest

from conftest import TITLE, FakeProvider, FakeSheetsBackend
from leadsheets.config import Settings
from leadsheets.errors import AuthError, ProvisionError
from leadsheets.services.provisioning import (
    HEADER_ROW,
    Found,
    LookupFailed,
    NotFound,
    SpreadsheetLocator,
    SpreadsheetProvisioner,
    first_found,
)


class SpyLocator(SpreadsheetLocator):
    def __init__(self, backend) -> None:
        super().__init__(backend)
        self.titles = []

    def find_by_title(self, title):
        self.titles.append(title)
        return super().find_by_title(title)


# --- first_found


def test_first_found_stops_at_first_hit() -> None:
    ran = []

    def step(name, outcome):
        def run():
            ran.append(name)
            return outcome
        return name, run

    hit = first_found([
        step("override", LookupFailed(RuntimeError("gone"))),
        step("search", Found("abc")),
        step("never", Found("zzz")),
    ])

    assert hit == ("search", Found("abc"))
    assert ran == ["override", "search"]


def test_first_found_returns_none_when_nothing_matches() -> None:
    assert first_found([("a", NotFound), ("b", lambda: LookupFailed(ValueError()))]) is None


# --- locator


def test_locator_returns_most_recent_match(backend) -> None:
    backend.add_existing(TITLE)
    newest = backend.add_existing(TITLE)
    backend.add_existing("Something else")

    assert SpreadsheetLocator(backend).find_by_title(TITLE) == Found(newest, TITLE)


def test_locator_not_found(backend) -> None:
    assert SpreadsheetLocator(backend).find_by_title(TITLE) == NotFound()


def test_locator_never_raises_on_search_failure(caplog) -> None:
    backend = FakeSheetsBackend(fail={"find": "Drive API has not been used in project"})

    with caplog.at_level(logging.WARNING):
        outcome = SpreadsheetLocator(backend).find_by_title(TITLE)

    assert isinstance(outcome, LookupFailed)
    assert "Drive API has not been used" in caplog.text


# --- provisioner


def test_title_is_derived_from_settings() -> None:
    assert Settings(organization_name="Acme Co").spreadsheet_title == TITLE
    assert Settings().spreadsheet_title == "SmartSheetConnect - Your Organization - Website Form Leads"


def test_first_resolve_creates_spreadsheet_with_header(provisioner, backend) -> None:
    handle = provisioner.resolve()

    assert handle.source == "created"
    assert handle.title == TITLE
    assert backend.sheets[handle.id]["title"] == TITLE
    assert backend.sheets[handle.id]["sheet"] == "Leads"
    assert backend.rows(handle.id) == [HEADER_ROW]
    assert backend.calls == ["find", "create", "update"]
    assert handle.url == f"https://docs.google.com/spreadsheets/d/{handle.id}"


def test_repeated_resolves_hit_the_cache(provisioner, backend, provider) -> None:
    first = provisioner.resolve()
    for _ in range(5):
        assert provisioner.resolve() == first

    assert backend.count("find") == 1
    assert backend.count("create") == 1
    assert provider.calls == 1


def test_existing_spreadsheet_is_reused_instead_of_created(backend, provider) -> None:
    existing = backend.add_existing(TITLE)
    prov = SpreadsheetProvisioner(backend, provider, title=TITLE)

    handle = prov.resolve()

    assert handle.id == existing
    assert handle.source == "search"
    assert backend.count("create") == 0
    assert backend.count("update") == 0


def test_valid_override_skips_search(backend, provider) -> None:
    override = backend.add_existing("Manually made sheet")
    locator = SpyLocator(backend)
    prov = SpreadsheetProvisioner(backend, provider, title=TITLE, override_id=override, locator=locator)

    handle = prov.resolve()

    assert handle.id == override
    assert handle.source == "override"
    assert handle.title == "Manually made sheet"
    assert locator.titles == []
    assert backend.calls == ["get"]


def test_invalid_override_behaves_like_no_override(provider) -> None:
    with_override = FakeSheetsBackend()
    without_override = FakeSheetsBackend()

    a = SpreadsheetProvisioner(with_override, provider, title=TITLE, override_id="deleted-sheet").resolve()
    b = SpreadsheetProvisioner(without_override, provider, title=TITLE).resolve()

    assert with_override.calls == ["get", "find", "create", "update"]
    assert without_override.calls == ["find", "create", "update"]
    assert (a.id, a.title, a.source) == (b.id, b.title, b.source)


def test_invalid_override_falls_back_to_search_hit(backend, provider) -> None:
    existing = backend.add_existing(TITLE)
    prov = SpreadsheetProvisioner(backend, provider, title=TITLE, override_id="nope")

    assert prov.resolve().id == existing


def test_search_failure_falls_back_to_create(provider) -> None:
    backend = FakeSheetsBackend(fail={"find": "quota exceeded"})
    handle = SpreadsheetProvisioner(backend, provider, title=TITLE).resolve()

    assert handle.source == "created"
    assert backend.count("create") == 1


def test_create_failure_raises_provision_error(provider) -> None:
    backend = FakeSheetsBackend(fail={"create": "insufficient permissions"})
    prov = SpreadsheetProvisioner(backend, provider, title=TITLE)

    with pytest.raises(ProvisionError) as exc_info:
        prov.resolve()

    assert "insufficient permissions" in str(exc_info.value)
    assert exc_info.value.orphan_id is None

    # nothing was cached, so the next request tries again
    del backend.fail["create"]
    assert prov.resolve().source == "created"
    assert backend.count("create") == 2


def test_header_failure_reports_orphaned_spreadsheet(provider, caplog) -> None:
    backend = FakeSheetsBackend(fail={"update": "backend hiccup"})
    prov = SpreadsheetProvisioner(backend, provider, title=TITLE)

    with caplog.at_level(logging.ERROR), pytest.raises(ProvisionError) as exc_info:
        prov.resolve()

    orphan = exc_info.value.orphan_id
    assert orphan in backend.sheets
    assert orphan in caplog.text

    # the next request finds the orphan by title instead of creating another
    del backend.fail["update"]
    handle = prov.resolve()
    assert (handle.id, handle.source) == (orphan, "search")
    assert backend.count("create") == 1


def test_auth_error_surfaces_before_any_lookup(backend, auth_error) -> None:
    prov = SpreadsheetProvisioner(backend, FakeProvider(error=auth_error), title=TITLE, override_id="x")

    with pytest.raises(AuthError):
        prov.resolve()
    assert backend.calls == []


def test_created_id_is_persisted(backend, provider) -> None:
    saved = []
    prov = SpreadsheetProvisioner(backend, provider, title=TITLE, persist=lambda sid: saved.append(sid) or True)

    handle = prov.resolve()
    prov.resolve()

    assert saved == [handle.id]


def test_found_id_is_not_persisted(backend, provider) -> None:
    saved = []
    backend.add_existing(TITLE)
    SpreadsheetProvisioner(backend, provider, title=TITLE, persist=saved.append).resolve()
    assert saved == []


def test_persist_failure_is_logged_not_raised(backend, provider, caplog) -> None:
    def broken(_sid):
        raise PermissionError("read-only filesystem")

    prov = SpreadsheetProvisioner(backend, provider, title=TITLE, persist=broken)
    with caplog.at_level(logging.WARNING):
        handle = prov.resolve()

    assert handle.source == "created"
    assert "read-only filesystem" in caplog.text


def test_from_settings_disables_persistence_when_configured_off(settings, backend, provider) -> None:
    saved = []
    prov = SpreadsheetProvisioner.from_settings(settings, backend, provider, persist=saved.append)
    prov.resolve()

    assert prov.title == TITLE
    assert saved == []


def test_concurrent_first_requests_create_one_spreadsheet(provider) -> None:
    backend = FakeSheetsBackend(create_delay=0.05)
    prov = SpreadsheetProvisioner(backend, provider, title=TITLE)
    barrier = threading.Barrier(8)
    ids = []

    def worker():
        barrier.wait()
        ids.append(prov.resolve().id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(set(ids)) == 1
    assert backend.count("create") == 1
    assert backend.count("find") == 1


def test_restarted_process_reuses_created_spreadsheet(provisioner, backend, provider) -> None:
    first = provisioner.resolve()
    second = SpreadsheetProvisioner(backend, provider, title=TITLE).resolve()

    assert second.id == first.id
    assert second.source == "search"
    assert backend.count("create") == 1
