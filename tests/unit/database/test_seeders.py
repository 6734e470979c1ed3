"""
Unit tests for SeederResolver and SeederManager.

Tests cover:
- Full and single-seeder resolution
- Missing dependencies and cycles (nothing executed)
- Fail-fast and best-effort runs
- Per-seeder transactions
- Listing with fallback to registration order
"""

import pytest

from dbengine.config import SeederConfig
from dbengine.errors import CycleError, ExecutionError, RegistrationError
from dbengine.seeders import Seeder, SeederManager, SeederResolver


def _names(seeders):
    return [s.name for s in seeders]


@pytest.fixture
def abc_seeders(make_seeder):
    """A (no deps), B (A), C (A, B), D (C), registered out of order."""
    return [
        make_seeder('C', ['A', 'B']),
        make_seeder('D', ['C']),
        make_seeder('B', ['A']),
        make_seeder('A'),
    ]


class TestSeederResolver:
    """Test dependency resolution."""

    def test_resolve_all_orders_dependencies(self, abc_seeders):
        """Test A precedes B and B precedes C."""
        order = _names(SeederResolver(abc_seeders).resolve_all())

        assert order.index('A') < order.index('B') < order.index('C') < order.index('D')
        assert sorted(order) == ['A', 'B', 'C', 'D']

    def test_resolve_for_closure_only(self, abc_seeders):
        """Test resolving C yields its prerequisites and itself, not D."""
        assert _names(SeederResolver(abc_seeders).resolve_for('C')) == ['A', 'B', 'C']

    def test_resolve_for_leaf(self, abc_seeders):
        """Test resolving a seeder without dependencies yields only itself."""
        assert _names(SeederResolver(abc_seeders).resolve_for('A')) == ['A']

    def test_missing_dependency(self, make_seeder):
        """Test the error names the dependent and the missing dependency."""
        resolver = SeederResolver([make_seeder('A'), make_seeder('B', ['A', 'RoleSeeder'])])

        with pytest.raises(RegistrationError) as exc_info:
            resolver.resolve_all()

        assert "'B'" in str(exc_info.value)
        assert "'RoleSeeder'" in str(exc_info.value)

    def test_cycle(self, make_seeder):
        """Test X <-> Y raises CycleError naming both."""
        resolver = SeederResolver([make_seeder('X', ['Y']), make_seeder('Y', ['X'])])

        with pytest.raises(CycleError) as exc_info:
            resolver.resolve_all()

        assert set(exc_info.value.cycle) == {'X', 'Y'}

    def test_cycle_in_closure(self, make_seeder):
        """Test resolve_for reports the node that was revisited."""
        resolver = SeederResolver([
            make_seeder('A', ['X']), make_seeder('X', ['Y']), make_seeder('Y', ['X']),
        ])

        with pytest.raises(CycleError) as exc_info:
            resolver.resolve_for('A')

        assert exc_info.value.cycle == ['X', 'Y', 'X']

    def test_duplicate_names(self, make_seeder):
        """Test two seeders with one name are rejected."""
        resolver = SeederResolver([make_seeder('UserSeeder'), make_seeder('UserSeeder')])

        with pytest.raises(RegistrationError, match="Duplicate seeder name 'UserSeeder'"):
            resolver.resolve_all()

    def test_find_with_and_without_suffix(self, make_seeder):
        """Test 'User' finds 'UserSeeder' but exact names win."""
        resolver = SeederResolver([make_seeder('UserSeeder'), make_seeder('Role')])

        assert resolver.find('UserSeeder').name == 'UserSeeder'
        assert resolver.find('User').name == 'UserSeeder'
        assert resolver.find('Role').name == 'Role'

    def test_find_unknown(self, make_seeder):
        """Test an unknown name raises RegistrationError."""
        with pytest.raises(RegistrationError, match="Seeder 'Ghost' not found"):
            SeederResolver([make_seeder('A')]).find('Ghost')


class TestSeederUnit:
    """Test the Seeder base class."""

    def test_default_dependencies_not_shared(self):
        """Test seeders without declared dependencies get an immutable empty default."""
        class RoleSeeder(Seeder):
            name = 'RoleSeeder'

            def run(self, tx):
                pass

        class PermissionSeeder(Seeder):
            name = 'PermissionSeeder'

            def run(self, tx):
                pass

        assert RoleSeeder().dependencies == ()
        with pytest.raises(AttributeError):
            RoleSeeder.dependencies.append('PermissionSeeder')
        assert PermissionSeeder().dependencies == ()


class TestRunSeeders:
    """Test executing seeders."""

    def test_registered_seeders_snapshot(self, database, abc_seeders):
        """Test registered seeders come back in registration order as a copy."""
        manager = SeederManager(database, abc_seeders)

        registered = manager.get_registered_seeders()
        registered.clear()

        assert _names(manager.get_registered_seeders()) == ['C', 'D', 'B', 'A']

    def test_run_all(self, database, abc_seeders, calls, seed_log):
        """Test every seeder runs once in dependency order."""
        report = SeederManager(database, abc_seeders).run_seeders()

        assert calls == ['A', 'B', 'C', 'D']
        assert report.executed == ['A', 'B', 'C', 'D']
        assert report.success is True
        assert seed_log() == ['A', 'B', 'C', 'D']

    def test_run_named(self, database, abc_seeders, calls):
        """Test a named run executes A, B, C and never D."""
        report = SeederManager(database, abc_seeders).run_seeders('C')

        assert calls == ['A', 'B', 'C']
        assert report.executed == ['A', 'B', 'C']

    def test_run_named_with_suffix_lookup(self, database, make_seeder, calls):
        """Test the Seeder suffix may be omitted for named runs."""
        seeders = [make_seeder('RoleSeeder'), make_seeder('UserSeeder', ['RoleSeeder'])]

        SeederManager(database, seeders).run_seeders('User')

        assert calls == ['RoleSeeder', 'UserSeeder']

    def test_run_unknown_name(self, database, abc_seeders, calls):
        """Test an unknown name fails before running anything."""
        with pytest.raises(RegistrationError):
            SeederManager(database, abc_seeders).run_seeders('Ghost')

        assert calls == []

    def test_cycle_runs_nothing(self, database, make_seeder, calls, seed_log):
        """Test a cycle aborts before any seeder runs."""
        seeders = [make_seeder('A'), make_seeder('X', ['Y']), make_seeder('Y', ['X'])]

        with pytest.raises(CycleError):
            SeederManager(database, seeders).run_seeders()

        assert calls == []
        assert seed_log() == []

    def test_missing_dependency_runs_nothing(self, database, make_seeder, calls):
        """Test a dangling dependency aborts before any seeder runs."""
        seeders = [make_seeder('A'), make_seeder('B', ['Missing'])]

        with pytest.raises(RegistrationError, match="'B' depends on 'Missing'"):
            SeederManager(database, seeders).run_seeders()

        assert calls == []

    def test_fail_fast(self, database, make_seeder, calls, seed_log):
        """Test fail-fast stops at the first failure and rolls it back."""
        seeders = [make_seeder('A'), make_seeder('B', ['A'], fail=True), make_seeder('C', ['B'])]
        manager = SeederManager(database, seeders, SeederConfig(fail_fast=True))

        with pytest.raises(ExecutionError) as exc_info:
            manager.run_seeders()

        assert exc_info.value.name == 'B'
        assert exc_info.value.operation == 'run'
        assert calls == ['A', 'B']
        assert seed_log() == ['A']

    def test_best_effort_continues(self, database, make_seeder, calls, seed_log):
        """Test best-effort mode logs failures and runs the rest."""
        seeders = [
            make_seeder('A'),
            make_seeder('B', ['A'], fail=True),
            make_seeder('C', ['B']),
            make_seeder('D'),
        ]
        manager = SeederManager(database, seeders, SeederConfig(fail_fast=False))

        report = manager.run_seeders()

        assert calls == ['A', 'D', 'B', 'C']
        assert report.executed == ['A', 'D', 'C']
        assert report.failed == ['B']
        assert report.success is False
        assert seed_log() == ['A', 'D', 'C']

    def test_named_run_always_fails_fast(self, database, make_seeder, calls):
        """Test a named run stops at the first failure even in best-effort mode."""
        seeders = [make_seeder('A', fail=True), make_seeder('B', ['A'])]
        manager = SeederManager(database, seeders, SeederConfig(fail_fast=False))

        with pytest.raises(ExecutionError):
            manager.run_seeders('B')

        assert calls == ['A']

    def test_runs_are_not_idempotent(self, database, abc_seeders, seed_log):
        """Test running twice executes every seeder twice."""
        manager = SeederManager(database, abc_seeders)

        manager.run_seeders()
        manager.run_seeders()

        assert seed_log() == ['A', 'B', 'C', 'D'] * 2

    def test_no_seeders(self, database):
        """Test an empty registry runs nothing."""
        report = SeederManager(database, []).run_seeders()

        assert report.executed == []
        assert report.success is True


class TestListSeeders:
    """Test listing seeders."""

    def test_list_resolved(self, database, abc_seeders, calls):
        """Test the listing follows run order with dependencies."""
        listing = SeederManager(database, abc_seeders).list_seeders()

        assert listing.resolved is True
        assert listing.error is None
        assert [e.name for e in listing.entries] == ['A', 'B', 'C', 'D']
        assert [e.position for e in listing.entries] == [1, 2, 3, 4]
        assert listing.entries[2].dependencies == ['A', 'B']
        assert calls == []

    def test_list_falls_back_to_registration_order(self, database, make_seeder):
        """Test unresolvable graphs are listed in registration order and flagged."""
        seeders = [make_seeder('B', ['Missing']), make_seeder('A')]

        listing = SeederManager(database, seeders).list_seeders()

        assert listing.resolved is False
        assert 'Missing' in listing.error
        assert [e.name for e in listing.entries] == ['B', 'A']

    def test_list_cycle_falls_back(self, database, make_seeder):
        """Test a cycle does not make listing fail."""
        seeders = [make_seeder('X', ['Y']), make_seeder('Y', ['X'])]

        listing = SeederManager(database, seeders).list_seeders()

        assert listing.resolved is False
        assert [e.name for e in listing.entries] == ['X', 'Y']

    def test_list_empty(self, database):
        """Test listing with no seeders."""
        listing = SeederManager(database, []).list_seeders()

        assert listing.entries == []
        assert listing.resolved is True
