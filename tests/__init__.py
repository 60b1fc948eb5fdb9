"""
Posts core unit tests
"""

import unittest
from .test_api import APITests, SeededAPITests, VersioningTests
from .test_cli import ServerOptionsTests, StandaloneCLITests
from .test_database import DatabaseTests, SettingsTests
from .test_seeding import SeedingTests
from .test_service import PostServiceTests
from .test_store import ConcurrentPostStoreTests, PostStoreTests


TEST_CLASSES = [
    APITests,
    ConcurrentPostStoreTests,
    DatabaseTests,
    PostServiceTests,
    PostStoreTests,
    SeededAPITests,
    SeedingTests,
    ServerOptionsTests,
    SettingsTests,
    StandaloneCLITests,
    VersioningTests,
]


def get_suite() -> unittest.TestSuite:
    suite = unittest.TestSuite()
    for cls in TEST_CLASSES:
        for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
            suite.addTest(cls(fixture))
    return suite
