"""
Dependency-ordered data seeding.

This package provides:
- Seeder: Seeder unit base class
- SeederResolver: Execution order over registered seeders
- SeederManager: Runs and lists seeders
"""

from .seeder import Seeder
from .seeder_manager import SeederListEntry, SeederListing, SeederManager, SeedReport
from .seeder_resolver import SeederResolver

__all__ = [
    'Seeder',
    'SeederResolver',
    'SeederManager',
    'SeedReport',
    'SeederListing',
    'SeederListEntry',
]
