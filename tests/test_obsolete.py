"""Tests for rename-to-obsolete handling of tables and fields.

Nothing is ever dropped: unwanted tables and fields are renamed to the
first free ``_obsolete_<name>[N]`` name.
"""

from conftest import FakeBackend
from db_reconcile.events import AlterationKind, RecordingEventSink
from db_reconcile.schema.reconciler import SchemaReconciler, obsolete_name

ID_LIVE = "int(11) not null auto_increment"


# ============================================================================
# Test: Obsolete Names
# ============================================================================


class TestObsoleteName:
    """Verify the suffix sequence '', 2, 3, ..."""

    def test_first_free_name(self) -> None:
        assert obsolete_name("Page", set()) == "_obsolete_Page"

    def test_suffix_sequence(self) -> None:
        taken = {"_obsolete_page", "_obsolete_page2"}
        assert obsolete_name("Page", taken) == "_obsolete_Page3"

    def test_taken_names_match_case_insensitively(self) -> None:
        assert obsolete_name("Page", {"_obsolete_page"}) == "_obsolete_Page2"


# ============================================================================
# Test: dont_require_table
# ============================================================================


class TestDontRequireTable:
    """Verify obsolete tables are renamed, never dropped."""

    def test_renames_existing_table(self, backend: FakeBackend, events: RecordingEventSink) -> None:
        """An existing table is renamed immediately and reported."""
        backend.add_table("OldTable", {"ID": ID_LIVE})
        reconciler = SchemaReconciler(backend, events=events)

        assert reconciler.dont_require_table("OldTable") == "_obsolete_OldTable"
        assert backend.calls == [("rename_table", ("OldTable", "_obsolete_OldTable"))]
        assert events.messages(AlterationKind.OBSOLETE) == [
            "Table OldTable: renamed to _obsolete_OldTable"
        ]

    def test_skips_taken_names(self, backend: FakeBackend) -> None:
        """Existing obsolete copies push the suffix forward."""
        backend.add_table("OldTable")
        backend.add_table("_obsolete_OldTable")
        backend.add_table("_obsolete_OldTable2")

        new_name = SchemaReconciler(backend, quiet=True).dont_require_table("OldTable")

        assert new_name == "_obsolete_OldTable3"
        assert "_obsolete_OldTable3" in backend.tables

    def test_missing_table_is_noop(self, backend: FakeBackend, events: RecordingEventSink) -> None:
        """Nothing happens for a table that does not exist."""
        assert SchemaReconciler(backend, events=events).dont_require_table("Ghost") is None
        assert backend.calls == []
        assert events.events == []

    def test_never_drops(self, backend: FakeBackend) -> None:
        """Only renames reach the backend."""
        backend.add_table("OldTable")
        reconciler = SchemaReconciler(backend, quiet=True)
        reconciler.dont_require_table("OldTable")
        reconciler.dont_require_table("OldTable")

        assert [name for name, _ in backend.calls] == ["rename_table"]

    def test_catalog_tracks_rename_during_pass(self, backend: FakeBackend) -> None:
        """Requiring a renamed table in the same pass creates it again."""
        backend.add_table("OldTable", {"ID": ID_LIVE})
        reconciler = SchemaReconciler(backend, quiet=True)
        reconciler.begin_schema_update()
        reconciler.dont_require_table("OldTable")
        reconciler.require_table("OldTable")

        assert reconciler.transaction["OldTable"].command == "create"
        reconciler.abort_schema_update()

    def test_dry_run_does_not_rename(self, backend: FakeBackend, events: RecordingEventSink) -> None:
        """dry_run=True reports the rename only."""
        backend.add_table("OldTable")
        reconciler = SchemaReconciler(backend, events=events, dry_run=True)

        assert reconciler.dont_require_table("OldTable") == "_obsolete_OldTable"
        assert backend.calls == []
        assert events.messages(AlterationKind.OBSOLETE) == [
            "Table OldTable: would be renamed to _obsolete_OldTable"
        ]

    def test_rename_uses_live_spelling(self, backend: FakeBackend, events: RecordingEventSink) -> None:
        """A differently-cased name still renames the table as it exists."""
        backend.add_table("Member", {"ID": ID_LIVE})
        reconciler = SchemaReconciler(backend, events=events)

        assert reconciler.dont_require_table("member") == "_obsolete_Member"
        assert backend.calls == [("rename_table", ("Member", "_obsolete_Member"))]
        assert list(backend.tables) == ["_obsolete_Member"]
        assert events.messages(AlterationKind.OBSOLETE) == ["Table Member: renamed to _obsolete_Member"]

    def test_immediate_changes_counted(self, backend: FakeBackend) -> None:
        """Renames are counted per pass, dry run included."""
        backend.add_table("OldTable")
        backend.add_table("Member", {"ID": ID_LIVE, "Legacy": "int(11)"})
        reconciler = SchemaReconciler(backend, quiet=True, dry_run=True)

        reconciler.begin_schema_update()
        reconciler.dont_require_table("OldTable")
        reconciler.dont_require_field("Member", "Legacy")
        reconciler.dont_require_table("Ghost")
        assert reconciler.immediate_changes == 2
        reconciler.abort_schema_update()
        assert reconciler.immediate_changes == 2

        reconciler.begin_schema_update()
        assert reconciler.immediate_changes == 0
        reconciler.abort_schema_update()


# ============================================================================
# Test: dont_require_field
# ============================================================================


class TestDontRequireField:
    """Verify obsolete fields are renamed, never dropped."""

    def test_renames_existing_field(self, backend: FakeBackend, events: RecordingEventSink) -> None:
        backend.add_table("Member", {"ID": ID_LIVE, "Password": "varchar(64)"})

        new_name = SchemaReconciler(backend, events=events).dont_require_field("Member", "Password")

        assert new_name == "_obsolete_Password"
        assert backend.calls == [("rename_field", ("Member", "Password", "_obsolete_Password"))]
        assert events.messages(AlterationKind.OBSOLETE) == [
            "Field Member.Password: renamed to Member._obsolete_Password"
        ]

    def test_suffix_when_taken(self, backend: FakeBackend) -> None:
        backend.add_table(
            "Member",
            {"ID": ID_LIVE, "Password": "varchar(64)", "_obsolete_Password": "varchar(40)"},
        )
        new_name = SchemaReconciler(backend, quiet=True).dont_require_field("Member", "Password")
        assert new_name == "_obsolete_Password2"

    def test_missing_field_is_noop(self, backend: FakeBackend) -> None:
        backend.add_table("Member", {"ID": ID_LIVE})
        assert SchemaReconciler(backend, quiet=True).dont_require_field("Member", "Password") is None
        assert backend.calls == []

    def test_cached_fields_refreshed_during_pass(self, backend: FakeBackend) -> None:
        """A field renamed in a pass is created again if still required."""
        backend.add_table("Member", {"ID": ID_LIVE, "Password": "varchar(64)"})
        reconciler = SchemaReconciler(backend, quiet=True)
        reconciler.begin_schema_update()
        reconciler.require_table("Member", fields={"Password": "varchar(64)"})
        assert "Member" not in reconciler.transaction

        reconciler.dont_require_field("Member", "Password")
        reconciler.require_field("Member", "Password", "varchar(64)")

        assert "Password" in reconciler.transaction["Member"].new_fields
        reconciler.abort_schema_update()
