"""Tests for the dialect adapters and shared filter predicates.

Adapters are pure text generators, so these tests assert on the SQL they
render: discovery filters, suspension/restoration around deletes, reseeds,
and temporal-table handling.
"""

import pytest

from db_respawn.adapters import (
    ADAPTERS,
    MySQLAdapter,
    PostgresAdapter,
    SQLiteAdapter,
    SqlServerAdapter,
    get_db_adapter,
)
from db_respawn.adapters.filters import (
    quote_literal,
    relationship_predicates,
    table_predicates,
    where_clause,
)
from db_respawn.config.models import RespawnerOptions
from db_respawn.errors import UnsupportedFeatureError
from db_respawn.graph.builder import build_deletion_plan
from db_respawn.graph.models import DeletionPlan, Relationship, Table, TemporalTable


def _options(adapter: str = "postgres", **kwargs) -> RespawnerOptions:
    return RespawnerOptions(db_adapter=adapter, **kwargs)


@pytest.fixture
def cyclic_plan() -> DeletionPlan:
    """public.Child -> public.A, A <-> B (cyclic)."""
    a, b, child = Table("public", "A"), Table("public", "B"), Table("public", "Child")
    return build_deletion_plan(
        [a, b, child],
        [
            Relationship(child, a, "FK_Child_A"),
            Relationship(a, b, "FK_A_B"),
            Relationship(b, a, "FK_B_A"),
        ],
        case_sensitive=True,
    )


@pytest.fixture
def acyclic_plan() -> DeletionPlan:
    """dbo.Foo -> dbo.Bob."""
    foo, bob = Table("dbo", "Foo"), Table("dbo", "Bob")
    return build_deletion_plan([foo, bob], [Relationship(foo, bob, "FK_Foo_Bob")])


# ------------------------------------------------------------------
# Registry
# ------------------------------------------------------------------


class TestGetDbAdapter:
    """Test adapter lookup by name."""

    @pytest.mark.parametrize(
        "name, cls",
        [
            ("sqlite", SQLiteAdapter),
            ("postgres", PostgresAdapter),
            ("mysql", MySQLAdapter),
            ("sqlserver", SqlServerAdapter),
        ],
    )
    def test_known_adapters(self, name: str, cls: type) -> None:
        """Each supported name resolves to its adapter."""
        adapter = get_db_adapter(name)
        assert isinstance(adapter, cls)
        assert adapter.name == name

    def test_unknown_adapter_raises(self) -> None:
        """Unknown names list the available adapters."""
        with pytest.raises(ValueError, match="Available: sqlite, postgres"):
            get_db_adapter("oracle")

    def test_registry_matches_option_names(self) -> None:
        """Every registered adapter is selectable through RespawnerOptions."""
        for name in ADAPTERS:
            assert _options(name).db_adapter == name


# ------------------------------------------------------------------
# Filters
# ------------------------------------------------------------------


class TestFilters:
    """Test include/ignore/schema predicate rendering."""

    def test_no_filters(self) -> None:
        """Unfiltered options produce no predicates and no WHERE."""
        assert table_predicates(_options(), "s", "n") == []
        assert where_clause([]) == ""

    def test_quote_literal_escapes(self) -> None:
        """Single quotes are doubled."""
        assert quote_literal("O'Brien") == "'O''Brien'"

    def test_unqualified_ignore(self) -> None:
        """Unqualified ignores match by name in every schema."""
        options = _options(tables_to_ignore=["Foo", "Bar"])
        assert table_predicates(options, "s", "n") == ["NOT (n IN ('Foo', 'Bar'))"]

    def test_qualified_include(self) -> None:
        """Qualified includes match schema and name; entries are OR'ed."""
        options = _options(tables_to_include=[("a", "Foo"), "Bar"])
        assert table_predicates(options, "s", "n") == [
            "(n IN ('Bar') OR (s = 'a' AND n = 'Foo'))"
        ]

    def test_include_and_ignore_both_apply(self) -> None:
        """Include and ignore predicates are AND'ed together."""
        options = _options(tables_to_include=["Foo", "Bar"], tables_to_ignore=["Baz"])
        predicates = table_predicates(options, "s", "n")
        assert predicates == ["NOT (n IN ('Baz'))", "n IN ('Foo', 'Bar')"]

    def test_schema_exclude_wins_over_include(self) -> None:
        """schemas_to_exclude disables schemas_to_include."""
        options = _options(schemas_to_include=["a"], schemas_to_exclude=["b"])
        assert table_predicates(options, "s", "n") == ["s NOT IN ('b')"]

    def test_schema_include(self) -> None:
        options = _options(schemas_to_include=["a", "b"])
        assert table_predicates(options, "s", "n") == ["s IN ('a', 'b')"]

    def test_fold_case(self) -> None:
        """fold_case compares lower() on both sides."""
        options = _options("sqlite", tables_to_ignore=["Foo"])
        assert table_predicates(options, "s", "n", fold_case=True) == [
            "NOT (lower(n) IN ('foo'))"
        ]

    def test_relationship_predicates_filter_both_ends(self) -> None:
        """Both the referencing and referenced table are filtered."""
        options = _options(tables_to_ignore=["Foo"])
        assert relationship_predicates(options, "ps", "pn", "rs", "rn") == [
            "NOT (pn IN ('Foo'))",
            "NOT (rn IN ('Foo'))",
        ]

    def test_where_clause_joins_with_and(self) -> None:
        assert where_clause(["a = 1", "b = 2"]) == "\nWHERE a = 1\n  AND b = 2"


# ------------------------------------------------------------------
# SQLite
# ------------------------------------------------------------------


class TestSQLiteAdapter:
    """Test SQLite SQL generation."""

    def test_table_query_excludes_internal_tables(self) -> None:
        sql = SQLiteAdapter().build_table_command_text(_options("sqlite"))
        assert "FROM sqlite_master t" in sql
        assert "t.type = 'table'" in sql
        assert "t.name NOT LIKE 'sqlite_%'" in sql

    def test_table_query_folds_case(self) -> None:
        """Filters match regardless of the spelling in the catalog."""
        options = _options("sqlite", tables_to_ignore=["Foo"])
        sql = SQLiteAdapter().build_table_command_text(options)
        assert "NOT (lower(t.name) IN ('foo'))" in sql

    def test_schema_filters_compare_main(self) -> None:
        """The implicit schema is 'main'."""
        options = _options("sqlite", schemas_to_exclude=["main"])
        sql = SQLiteAdapter().build_table_command_text(options)
        assert "lower('main') NOT IN ('main')" in sql

    def test_relationship_query_uses_pragma(self) -> None:
        sql = SQLiteAdapter().build_relationship_command_text(_options("sqlite"))
        assert "pragma_foreign_key_list(m.name)" in sql
        assert "constraint_name" in sql

    def test_delete_commands_defer_foreign_keys(self) -> None:
        """Deletes run in a savepoint with foreign key checks deferred."""
        foo, bob = Table(None, "Foo"), Table(None, "Bob")
        plan = build_deletion_plan([foo, bob], [Relationship(foo, bob)])

        commands = SQLiteAdapter().build_delete_commands(plan, _options("sqlite"))

        assert commands == [
            "SAVEPOINT respawn;",
            "PRAGMA defer_foreign_keys = ON;",
            'DELETE FROM "Foo";',
            'DELETE FROM "Bob";',
            "RELEASE respawn;",
        ]

    def test_quote_identifier_escapes(self) -> None:
        assert SQLiteAdapter.quote_identifier('a"b') == '"a""b"'

    def test_delete_commands_never_touch_enforcement(self) -> None:
        """The connection's foreign_keys setting is left as the caller set it."""
        plan = build_deletion_plan([Table(None, "Foo")], [])

        commands = SQLiteAdapter().build_delete_commands(plan, _options("sqlite"))

        assert not any(c.startswith("PRAGMA foreign_keys") for c in commands)

    def test_reseed_clears_sqlite_sequence(self) -> None:
        commands = SQLiteAdapter().build_reseed_commands(
            [Table(None, "Foo"), Table("main", "O'Brien")]
        )

        assert commands == [
            "DELETE FROM sqlite_sequence WHERE lower(name) = 'foo';",
            "DELETE FROM sqlite_sequence WHERE lower(name) = 'o''brien';",
        ]

    def test_reseed_check_looks_for_sqlite_sequence(self) -> None:
        sql = SQLiteAdapter().build_reseed_check_command_text()
        assert "sqlite_master" in sql
        assert "name = 'sqlite_sequence'" in sql

    @pytest.mark.parametrize("cls", [PostgresAdapter, MySQLAdapter, SqlServerAdapter])
    def test_server_adapters_reseed_unconditionally(self, cls: type) -> None:
        assert cls().build_reseed_check_command_text() is None

    def test_temporal_unsupported(self) -> None:
        adapter = SQLiteAdapter()
        assert adapter.supports_temporal_tables is False
        with pytest.raises(UnsupportedFeatureError):
            adapter.build_temporal_table_command_text(_options("sqlite"))
        with pytest.raises(UnsupportedFeatureError):
            adapter.build_turn_off_system_versioning_commands([])
        with pytest.raises(UnsupportedFeatureError):
            adapter.build_turn_on_system_versioning_commands([])


# ------------------------------------------------------------------
# PostgreSQL
# ------------------------------------------------------------------


class TestPostgresAdapter:
    """Test PostgreSQL SQL generation."""

    def test_case_sensitive(self) -> None:
        assert PostgresAdapter.case_sensitive_identifiers is True

    def test_table_query_excludes_system_schemas(self) -> None:
        sql = PostgresAdapter().build_table_command_text(_options())
        assert "FROM pg_catalog.pg_class c" in sql
        assert "n.nspname !~ '^pg_'" in sql
        assert "n.nspname <> 'information_schema'" in sql
        assert "NOT c.relispartition" in sql

    def test_table_query_applies_filters(self) -> None:
        options = _options(
            tables_to_ignore=[("public", "schema_migrations")],
            schemas_to_include=["public"],
        )
        sql = PostgresAdapter().build_table_command_text(options)
        assert (
            "NOT (n.nspname = 'public' AND c.relname = 'schema_migrations')" in sql
        )
        assert "n.nspname IN ('public')" in sql

    def test_relationship_query(self) -> None:
        sql = PostgresAdapter().build_relationship_command_text(_options())
        assert "con.contype = 'f'" in sql
        assert "con.conname AS constraint_name" in sql

    def test_delete_commands_disable_triggers_on_cyclic_tables(
        self, cyclic_plan: DeletionPlan
    ) -> None:
        """Only the cyclic tables have triggers disabled and re-enabled."""
        commands = PostgresAdapter().build_delete_commands(cyclic_plan, _options())

        assert commands == [
            'ALTER TABLE "public"."A" DISABLE TRIGGER ALL;',
            'ALTER TABLE "public"."B" DISABLE TRIGGER ALL;',
            'DELETE FROM "public"."Child";',
            'DELETE FROM "public"."A";',
            'DELETE FROM "public"."B";',
            'ALTER TABLE "public"."A" ENABLE TRIGGER ALL;',
            'ALTER TABLE "public"."B" ENABLE TRIGGER ALL;',
        ]

    def test_acyclic_plan_needs_no_suspension(self, acyclic_plan: DeletionPlan) -> None:
        commands = PostgresAdapter().build_delete_commands(acyclic_plan, _options())
        assert commands == ['DELETE FROM "dbo"."Foo";', 'DELETE FROM "dbo"."Bob";']

    def test_format_delete_statement_hook(self, acyclic_plan: DeletionPlan) -> None:
        """The formatter replaces each delete statement."""
        options = _options(
            format_delete_statement=lambda t: f"TRUNCATE {t.qualified_name} CASCADE;"
        )
        commands = PostgresAdapter().build_delete_commands(acyclic_plan, options)
        assert commands == ["TRUNCATE dbo.Foo CASCADE;", "TRUNCATE dbo.Bob CASCADE;"]

    def test_reseed_uses_setval(self) -> None:
        commands = PostgresAdapter().build_reseed_commands([Table("public", "Foo")])

        assert len(commands) == 1
        assert "setval(pg_get_serial_sequence('\"public\".\"Foo\"', a.attname), 1, false)" in commands[0]

    def test_temporal_unsupported(self) -> None:
        with pytest.raises(UnsupportedFeatureError):
            PostgresAdapter().build_temporal_table_command_text(_options())


# ------------------------------------------------------------------
# MySQL
# ------------------------------------------------------------------


class TestMySQLAdapter:
    """Test MySQL SQL generation."""

    def test_defaults_to_current_database(self) -> None:
        sql = MySQLAdapter().build_table_command_text(_options("mysql"))
        assert "t.TABLE_SCHEMA = DATABASE()" in sql
        assert "t.TABLE_TYPE = 'BASE TABLE'" in sql

    def test_schema_include_replaces_current_database(self) -> None:
        options = _options("mysql", schemas_to_include=["app", "app_audit"])
        sql = MySQLAdapter().build_table_command_text(options)
        assert "DATABASE()" not in sql
        assert "t.TABLE_SCHEMA IN ('app', 'app_audit')" in sql

    def test_relationship_query(self) -> None:
        sql = MySQLAdapter().build_relationship_command_text(_options("mysql"))
        assert "information_schema.REFERENTIAL_CONSTRAINTS rc" in sql
        assert "rc.CONSTRAINT_SCHEMA = DATABASE()" in sql

    def test_delete_commands_toggle_checks(self, acyclic_plan: DeletionPlan) -> None:
        commands = MySQLAdapter().build_delete_commands(acyclic_plan, _options("mysql"))
        assert commands == [
            "SET FOREIGN_KEY_CHECKS = 0;",
            "DELETE FROM `dbo`.`Foo`;",
            "DELETE FROM `dbo`.`Bob`;",
            "SET FOREIGN_KEY_CHECKS = 1;",
        ]

    def test_reseed(self) -> None:
        assert MySQLAdapter().build_reseed_commands([Table("app", "Foo")]) == [
            "ALTER TABLE `app`.`Foo` AUTO_INCREMENT = 1;"
        ]

    def test_temporal_unsupported(self) -> None:
        with pytest.raises(UnsupportedFeatureError, match="MySQL"):
            MySQLAdapter().build_temporal_table_command_text(_options("mysql"))


# ------------------------------------------------------------------
# SQL Server
# ------------------------------------------------------------------


class TestSqlServerAdapter:
    """Test SQL Server SQL generation."""

    def test_table_query(self) -> None:
        sql = SqlServerAdapter().build_table_command_text(
            _options("sqlserver", schemas_to_exclude=["audit"])
        )
        assert "FROM sys.tables t" in sql
        assert "t.is_ms_shipped = 0" in sql
        assert "s.name NOT IN ('audit')" in sql

    def test_delete_commands_nocheck_cyclic_constraints(
        self, cyclic_plan: DeletionPlan
    ) -> None:
        """Only constraints inside the cyclic group are suspended."""
        commands = SqlServerAdapter().build_delete_commands(
            cyclic_plan, _options("sqlserver")
        )

        assert commands == [
            "ALTER TABLE [public].[A] NOCHECK CONSTRAINT [FK_A_B];",
            "ALTER TABLE [public].[B] NOCHECK CONSTRAINT [FK_B_A];",
            "DELETE [public].[Child];",
            "DELETE [public].[A];",
            "DELETE [public].[B];",
            "ALTER TABLE [public].[A] WITH CHECK CHECK CONSTRAINT [FK_A_B];",
            "ALTER TABLE [public].[B] WITH CHECK CHECK CONSTRAINT [FK_B_A];",
        ]

    def test_unnamed_constraint_falls_back_to_all(self) -> None:
        a, b = Table("dbo", "A"), Table("dbo", "B")
        plan = build_deletion_plan([a, b], [Relationship(a, b), Relationship(b, a)])

        commands = SqlServerAdapter().build_delete_commands(plan, _options("sqlserver"))

        assert commands[0] == "ALTER TABLE [dbo].[A] NOCHECK CONSTRAINT ALL;"
        assert commands[-1] == "ALTER TABLE [dbo].[B] WITH CHECK CHECK CONSTRAINT ALL;"

    def test_reseed_guards_unused_identity(self) -> None:
        commands = SqlServerAdapter().build_reseed_commands([Table("dbo", "Foo")])

        assert commands == [
            "IF EXISTS (SELECT 1 FROM sys.identity_columns "
            "WHERE object_id = OBJECT_ID(N'[dbo].[Foo]') AND last_value IS NOT NULL) "
            "DBCC CHECKIDENT (N'[dbo].[Foo]', RESEED, 0);"
        ]

    def test_temporal_query(self) -> None:
        adapter = SqlServerAdapter()
        assert adapter.supports_temporal_tables is True

        sql = adapter.build_temporal_table_command_text(_options("sqlserver"))
        assert "t.temporal_type = 2" in sql
        assert "ht.object_id = t.history_table_id" in sql

    def test_system_versioning_commands(self) -> None:
        temporal = [TemporalTable("dbo", "Foo", "dbo", "FooHistory")]
        adapter = SqlServerAdapter()

        assert adapter.build_turn_off_system_versioning_commands(temporal) == [
            "ALTER TABLE [dbo].[Foo] SET (SYSTEM_VERSIONING = OFF);"
        ]
        assert adapter.build_turn_on_system_versioning_commands(temporal) == [
            "ALTER TABLE [dbo].[Foo] SET (SYSTEM_VERSIONING = ON "
            "(HISTORY_TABLE = [dbo].[FooHistory]));"
        ]

    def test_quote_identifier_escapes(self) -> None:
        assert SqlServerAdapter.quote_identifier("a]b") == "[a]]b]"
