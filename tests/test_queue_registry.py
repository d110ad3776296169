"""
Unit tests for the queue registry.
"""

import threading
from unittest.mock import Mock

import pytest

from core.exceptions import DuplicateQueueError, QueueLoadError
from models.queue_info import PrintQueue, QueueCategory, QueueInfo
from services.queue_registry import GENERIC_RESOURCE, QueueRegistry


def make_queue(name, category=QueueCategory.PRINT):
    return PrintQueue(
        resource=category.resource_for(name),
        name=name,
        category=category,
        info=QueueInfo(make="Example", model=name.title()),
    )


# Fixtures

@pytest.fixture
def registry():
    return QueueRegistry()


@pytest.fixture
def populated(registry):
    for name in ("laser", "inkjet", "plotter"):
        registry.add(make_queue(name))
    return registry


# Tests for registration

class TestRegistration:
    """Test adding and removing queues."""

    def test_resources_kept_in_order(self, populated):
        assert populated.resources() == ["/ipp/print/inkjet", "/ipp/print/laser", "/ipp/print/plotter"]
        assert [q.name for q in populated] == ["inkjet", "laser", "plotter"]
        assert len(populated) == 3

    def test_duplicate_resource_rejected(self, populated):
        replacement = make_queue("laser")

        with pytest.raises(DuplicateQueueError) as exc_info:
            populated.add(replacement)

        assert exc_info.value.resource == "/ipp/print/laser"
        assert len(populated) == 3
        assert populated.find("/ipp/print/laser") is not replacement

    def test_same_name_in_both_categories(self, registry):
        registry.add(make_queue("cube", QueueCategory.PRINT))
        registry.add(make_queue("cube", QueueCategory.PRINT3D))
        assert registry.resources() == ["/ipp/print/cube", "/ipp/print3d/cube"]

    def test_contains(self, populated):
        assert "/ipp/print/laser" in populated
        assert "/ipp/print/missing" not in populated

    def test_remove(self, populated):
        removed = populated.remove("/ipp/print/laser")
        assert removed.name == "laser"
        assert "/ipp/print/laser" not in populated
        assert populated.remove("/ipp/print/laser") is None

    def test_concurrent_adds(self, registry):
        names = [f"queue{i:03d}" for i in range(50)]
        threads = [threading.Thread(target=registry.add, args=(make_queue(name),)) for name in names]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert registry.resources() == sorted(f"/ipp/print/{name}" for name in names)

    def test_concurrent_duplicate_adds_keep_one(self, registry):
        errors = []

        def add():
            try:
                registry.add(make_queue("laser"))
            except DuplicateQueueError as e:
                errors.append(e)

        threads = [threading.Thread(target=add) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(registry) == 1
        assert len(errors) == 9


# Tests for lookup

class TestFind:
    """Test resource lookup."""

    def test_empty_registry(self, registry):
        assert registry.find(GENERIC_RESOURCE) is None
        assert registry.find("/ipp/print/laser") is None

    def test_exact_match(self, populated):
        assert populated.find("/ipp/print/inkjet").name == "inkjet"

    def test_unknown_resource(self, populated):
        assert populated.find("/ipp/print/missing") is None
        assert populated.find("/ipp/print3d/laser") is None

    def test_single_queue_answers_generic_resource(self, registry):
        registry.add(make_queue("laser"))
        assert registry.find(GENERIC_RESOURCE).name == "laser"
        assert registry.find("/ipp/print/laser").name == "laser"
        assert registry.find("/ipp/print/other") is None

    def test_single_3d_queue_answers_generic_resource(self, registry):
        registry.add(make_queue("cube", QueueCategory.PRINT3D))
        assert registry.find(GENERIC_RESOURCE).resource == "/ipp/print3d/cube"
        assert registry.find("/ipp/print3d/cube").name == "cube"

    def test_generic_resource_uses_first_queue(self, populated):
        assert populated.find(GENERIC_RESOURCE).name == "inkjet"

    def test_generic_resource_uses_default_printer(self):
        registry = QueueRegistry(default_printer="plotter")
        for name in ("laser", "inkjet", "plotter"):
            registry.add(make_queue(name))

        assert registry.find(GENERIC_RESOURCE).name == "plotter"

    def test_unregistered_default_printer_falls_back(self):
        registry = QueueRegistry(default_printer="missing")
        registry.add(make_queue("laser"))
        registry.add(make_queue("inkjet"))

        assert registry.find(GENERIC_RESOURCE).name == "inkjet"


# Tests for discovery

class TestDiscover:
    """Test loading queues from the configuration directory."""

    def test_discover(self, config_dir, laser_conf, write_file):
        write_file(config_dir / "print" / "laser.conf", laser_conf)
        write_file(config_dir / "print" / "laser.png", "PNG")
        write_file(config_dir / "print" / "broken.conf", "Make\n")
        write_file(config_dir / "print" / "README.txt", "notes\n")
        write_file(config_dir / "print3d" / "cube.conf", 'Make "Example"\nModel "Cube"\n')

        registry = QueueRegistry()
        added = registry.discover(config_dir)

        assert added == 2
        assert registry.resources() == ["/ipp/print/laser", "/ipp/print3d/cube"]

        laser = registry.find("/ipp/print/laser")
        assert laser.category is QueueCategory.PRINT
        assert laser.info.icon == str(config_dir / "print" / "laser.png")
        assert laser.info.model == "Laser 9000"

        cube = registry.find("/ipp/print3d/cube")
        assert cube.category is QueueCategory.PRINT3D
        assert cube.info.icon is None

    def test_undecodable_file_skips_only_that_queue(self, config_dir, write_file):
        (config_dir / "print" / "a_bad.conf").write_bytes(b'Make "\xff\xfe"\n')
        write_file(config_dir / "print" / "b_good.conf", "Make Example\n")

        registry = QueueRegistry()

        assert registry.discover(config_dir) == 1
        assert registry.resources() == ["/ipp/print/b_good"]

    def test_include_loop_skips_only_that_queue(self, config_dir, write_file):
        write_file(config_dir / "print" / "a_loop.conf", 'INCLUDE "a_loop.conf"\n')
        write_file(config_dir / "print" / "b_good.conf", "Make Example\n")

        registry = QueueRegistry()

        assert registry.discover(config_dir) == 1
        assert registry.resources() == ["/ipp/print/b_good"]

    def test_missing_directories(self, tmp_path):
        registry = QueueRegistry()
        assert registry.discover(tmp_path / "nowhere") == 0
        assert len(registry) == 0

    def test_loader_called_in_sorted_order(self, config_dir, write_file):
        for name in ("b", "a", "c"):
            write_file(config_dir / "print" / f"{name}.conf", "")
        loader = Mock(return_value=QueueInfo())

        QueueRegistry().discover(config_dir, loader=loader)

        paths = [call.args[0] for call in loader.call_args_list]
        assert paths == [str(config_dir / "print" / f"{name}.conf") for name in ("a", "b", "c")]
        assert all(call.kwargs["icon"] is None for call in loader.call_args_list)

    def test_failed_file_does_not_stop_discovery(self, config_dir, write_file):
        write_file(config_dir / "print" / "a.conf", "")
        write_file(config_dir / "print" / "b.conf", "")

        def loader(path, icon=None):
            if path.endswith("a.conf"):
                raise QueueLoadError(path)
            return QueueInfo()

        registry = QueueRegistry()
        assert registry.discover(config_dir, loader=loader) == 1
        assert registry.resources() == ["/ipp/print/b"]

    def test_rediscovery_skips_registered_queues(self, config_dir, laser_conf, write_file):
        write_file(config_dir / "print" / "laser.conf", laser_conf)
        registry = QueueRegistry()

        assert registry.discover(config_dir) == 1
        assert registry.discover(config_dir) == 0
        assert len(registry) == 1

    def test_bare_extension_is_skipped(self, config_dir, write_file):
        write_file(config_dir / "print" / ".conf", "")
        loader = Mock(return_value=QueueInfo())

        assert QueueRegistry().discover(config_dir, loader=loader) == 0
        loader.assert_not_called()


# Tests for maintenance

class TestCleanup:
    """Test job-retention cleanup."""

    def test_visits_every_queue_in_order(self, populated):
        clean_jobs = Mock()

        assert populated.cleanup(clean_jobs) == 3
        assert [call.args[0].name for call in clean_jobs.call_args_list] == ["inkjet", "laser", "plotter"]

    def test_runs_without_registry_lock(self, populated):
        observed = []

        def clean_jobs(queue):
            observed.append(populated._lock.locked())
            # Would deadlock if the registry lock were still held
            populated.find(queue.resource)

        populated.cleanup(clean_jobs)

        assert observed == [False, False, False]

    def test_failure_in_one_queue_continues(self, populated):
        clean_jobs = Mock(side_effect=[RuntimeError("disk full"), None, None])

        assert populated.cleanup(clean_jobs) == 3
        assert clean_jobs.call_count == 3

    def test_empty_registry(self, registry):
        clean_jobs = Mock()
        assert registry.cleanup(clean_jobs) == 0
        clean_jobs.assert_not_called()
