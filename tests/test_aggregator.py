"""Tests for deriving stacks from container snapshots."""

from datetime import UTC, datetime

import pytest

from fleet_stacks.models import ContainerRecord, Service
from fleet_stacks.services.aggregator import (
    ComposeProject,
    Standalone,
    aggregate,
    derive_stack_status,
    fold_service_state,
    group_containers,
    humanize_name,
    map_container_state,
    resolve_ownership,
    resolve_service_name,
)

OBSERVED_AT = datetime(2026, 1, 1, tzinfo=UTC)


@pytest.fixture
def papem_records(papem_payloads) -> list[ContainerRecord]:
    return [ContainerRecord.model_validate(payload) for payload in papem_payloads]


class TestComposeStacks:
    """Test grouping of labeled compose projects."""

    def test_papem_core_scenario(self, papem_records):
        """Two running api replicas and an exited proxy make one degraded stack."""
        stacks = aggregate(papem_records, OBSERVED_AT)

        assert len(stacks) == 1
        stack = stacks[0]
        assert stack.id == "papem-core"
        assert stack.name == "Papem Core"
        assert stack.project_name == "papem-core"
        assert stack.status == "degraded"
        assert stack.path == "/srv/papem-core/docker-compose.yml"
        assert stack.observed_at == OBSERVED_AT
        assert [(s.name, s.replicas, s.state) for s in stack.services] == [
            ("api", 2, "running"),
            ("proxy", 1, "stopped"),
        ]

    def test_ports_are_rendered_and_sorted(self, papem_records):
        stack = aggregate(papem_records)[0]
        assert stack.services[0].ports == ["8080:80/tcp", "9090/tcp"]
        assert stack.services[1].ports == []

    def test_duplicate_ports_collapse(self, make_container):
        ports = [{"PrivatePort": 80, "PublicPort": 8080, "Type": "tcp"}]
        containers = [
            make_container("a" * 64, project="web", service="web", ports=ports),
            make_container("b" * 64, project="web", service="web", ports=ports),
        ]

        assert aggregate(containers)[0].services[0].ports == ["8080:80/tcp"]

    def test_image_and_last_event_from_newest_container(self, make_container):
        containers = [
            make_container(
                "b" * 64, project="web", service="web", image="web:2", status="Up 1 minute",
                created=200,
            ),
            make_container(
                "a" * 64, project="web", service="web", image="web:1", status="Up 3 days",
                created=100,
            ),
        ]

        service = aggregate(containers)[0].services[0]
        assert service.image == "web:2"
        assert service.last_event == "Up 1 minute"

    def test_path_falls_back_to_working_dir(self, make_container):
        container = make_container(
            "a" * 64,
            project="web",
            service="web",
            labels={"com.docker.compose.project.working_dir": "/srv/web"},
        )
        assert aggregate([container])[0].path == "/srv/web"

    def test_first_config_file_is_used(self, make_container):
        container = make_container(
            "a" * 64,
            project="web",
            service="web",
            config_files="/srv/web/compose.yml,/srv/web/compose.override.yml",
        )
        assert aggregate([container])[0].path == "/srv/web/compose.yml"

    def test_missing_service_label_uses_container_name(self, make_container):
        container = make_container("a" * 64, name="web-worker", project="web")
        assert aggregate([container])[0].services[0].name == "web-worker"


class TestStandaloneStacks:
    """Test containers without a compose project label."""

    def test_singleton_stack_per_container(self, make_container):
        containers = [
            make_container("a" * 64, name="redis_cache"),
            make_container("b" * 64, name="redis_cache_2"),
        ]

        stacks = aggregate(containers)

        assert [s.id for s in stacks] == ["a" * 64, "b" * 64]
        assert all(s.project_name == "standalone" for s in stacks)
        assert all(len(s.services) == 1 for s in stacks)

    def test_standalone_naming(self, make_container):
        stack = aggregate([make_container("a" * 64, name="redis_cache")])[0]

        assert stack.name == "Redis Cache"
        assert stack.path == "redis_cache"
        assert stack.services[0].name == "redis_cache"

    def test_unnamed_container_uses_short_id(self, make_container):
        stack = aggregate([make_container("0123456789abcdef0123")])[0]

        assert stack.services[0].name == "0123456789ab"
        assert stack.path == "0123456789ab"

    def test_empty_project_label_is_standalone(self, make_container):
        container = make_container(
            "a" * 64, name="orphan", labels={"com.docker.compose.project": ""}
        )
        assert resolve_ownership(container) == Standalone("a" * 64, "orphan")


class TestSnapshotInvariants:
    """Properties that hold for any snapshot."""

    @pytest.fixture
    def mixed_records(self, papem_records, make_container) -> list[ContainerRecord]:
        return [
            *papem_records,
            make_container("d" * 64, name="adminer", state="paused"),
            make_container("e" * 64, project="blog", service="db", state="restarting"),
            make_container("f" * 64, project="blog", service="web", state="dead"),
        ]

    def test_every_container_lands_in_exactly_one_stack(self, mixed_records):
        groups = group_containers(mixed_records)

        grouped_ids = [c.id for group in groups.values() for c in group.containers]
        assert sorted(grouped_ids) == sorted(c.id for c in mixed_records)
        assert sum(s.replicas for g in groups.values() for s in g.stack.services) == len(
            mixed_records
        )

    def test_sorted_by_display_name(self, mixed_records):
        names = [s.name for s in aggregate(mixed_records)]
        assert names == ["Adminer", "Blog", "Papem Core"]

    def test_same_snapshot_same_result(self, mixed_records):
        first = aggregate(mixed_records, OBSERVED_AT)
        second = aggregate(list(mixed_records), OBSERVED_AT)
        assert first == second

    def test_empty_snapshot(self):
        assert aggregate([]) == []

    def test_containers_by_service_order(self, papem_records):
        group = group_containers(reversed(papem_records))["papem-core"]
        assert [service for service, _ in group.containers_by_service()] == [
            "api",
            "api",
            "proxy",
        ]


class TestStateRules:
    @pytest.mark.parametrize(
        "state,expected",
        [
            ("running", "running"),
            ("restarting", "restarting"),
            ("paused", "stopped"),
            ("exited", "stopped"),
            ("dead", "stopped"),
            ("created", "stopped"),
            ("removing", "error"),
            ("unknown", "error"),
        ],
    )
    def test_map_container_state(self, state, expected):
        assert map_container_state(state) == expected

    @pytest.mark.parametrize(
        "states,expected",
        [
            (["running", "running"], "running"),
            (["stopped", "stopped"], "stopped"),
            (["running", "restarting"], "restarting"),
            (["running", "stopped"], "error"),
            (["error"], "error"),
        ],
    )
    def test_fold_service_state(self, states, expected):
        assert fold_service_state(states) == expected

    @pytest.mark.parametrize(
        "states,expected",
        [
            (["running", "running"], "running"),
            (["stopped"], "stopped"),
            (["running", "stopped"], "degraded"),
            (["restarting"], "degraded"),
            (["running", "error"], "degraded"),
            ([], "stopped"),
        ],
    )
    def test_derive_stack_status(self, states, expected):
        services = [Service(name=f"svc{i}", state=state) for i, state in enumerate(states)]
        assert derive_stack_status(services) == expected


class TestNaming:
    @pytest.mark.parametrize(
        "key,expected",
        [
            ("papem-core", "Papem Core"),
            ("my_app stack", "My App Stack"),
            ("web", "Web"),
            ("---", "---"),
        ],
    )
    def test_humanize_name(self, key, expected):
        assert humanize_name(key) == expected

    def test_compose_ownership(self, make_container):
        container = make_container("a" * 64, project="blog", service="db")
        assert resolve_ownership(container) == ComposeProject("blog")
        assert resolve_service_name(container) == "db"
