"""
Tests for the in-memory environment repository.
"""

import threading

from envctl.core.environments import create_environment
from envctl.core.models import Environment, EnvironmentType
from envctl.core.repository import InMemoryEnvironmentRepository


def _env(env_id: str, name: str, env_type=EnvironmentType.QA) -> Environment:
    return Environment(id=env_id, name=name, type=env_type, base_url="https://qa.x")


class TestInMemoryRepository:
    def test_save_and_find(self):
        repo = InMemoryEnvironmentRepository()
        env = _env("QA-1", "QA One")
        repo.save(env)
        assert repo.find_by_id("QA-1") is env
        assert repo.exists("QA-1")
        assert repo.count() == 1

    def test_find_missing(self):
        repo = InMemoryEnvironmentRepository()
        assert repo.find_by_id("nope") is None
        assert repo.find_by_name("nope") is None
        assert not repo.exists("nope")

    def test_find_by_name_case_insensitive_exact(self):
        repo = InMemoryEnvironmentRepository([_env("QA-1", "QA One")])
        assert repo.find_by_name("qa one").id == "QA-1"
        assert repo.find_by_name("QA") is None

    def test_save_replaces_same_id(self):
        repo = InMemoryEnvironmentRepository([_env("QA-1", "Old")])
        repo.save(_env("QA-1", "New"))
        assert repo.count() == 1
        assert repo.find_by_id("QA-1").name == "New"

    def test_find_all_preserves_insertion_order(self):
        repo = InMemoryEnvironmentRepository([_env("B", "b"), _env("A", "a")])
        assert [e.id for e in repo.find_all()] == ["B", "A"]

    def test_delete(self):
        repo = InMemoryEnvironmentRepository([_env("QA-1", "x")])
        repo.delete("QA-1")
        repo.delete("QA-1")
        assert repo.count() == 0

    def test_find_by_type(self, environments):
        repo = InMemoryEnvironmentRepository(environments)
        prod = repo.find_by_type(EnvironmentType.PRODUCTION)
        assert [e.id for e in prod] == ["PROD-01"]

    def test_concurrent_saves(self):
        repo = InMemoryEnvironmentRepository()

        def worker(n: int) -> None:
            for i in range(50):
                repo.save(create_environment(
                    EnvironmentType.DEVELOPMENT, f"d{n}-{i}", "http://localhost", env_id=f"D{n}-{i}",
                ))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert repo.count() == 200
