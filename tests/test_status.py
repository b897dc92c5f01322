"""Tests for the stack status reconciler."""

from unittest.mock import AsyncMock, patch

import pytest

from afro_ceo.services.status import (
    RetryPolicy,
    StackStatusReconciler,
    parse_container_lines,
    reconcile,
)

from .conftest import FakeExecutor, failed, ok


def test_parse_lines_skips_blanks_and_header():
    output = "NAMES\tSTATUS\n\nafro-web\tUp 3 hours\nafro-db\tExited (0) 2 days ago\n"

    containers = parse_container_lines(output)

    assert [c.name for c in containers] == ["afro-web", "afro-db"]
    assert containers[0].running
    assert not containers[1].running


def test_parse_lines_without_tab():
    containers = parse_container_lines("afro-validator Up 2 minutes (healthy)")

    assert containers[0].name == "afro-validator"
    assert containers[0].state == "Up 2 minutes (healthy)"
    assert containers[0].running


@pytest.mark.parametrize(
    "state, running",
    [
        ("Up 3 hours", True),
        ("up", True),
        ("running", True),
        ("Exited (1) 5 seconds ago", False),
        ("Created", False),
        ("Restarting (1) 2 seconds ago", False),
        ("Paused", False),
    ],
)
def test_running_detection(state, running):
    assert parse_container_lines(f"afro-web\t{state}")[0].running is running


def test_reconcile_matches_by_substring():
    status = reconcile(
        parse_container_lines(
            "afro-network_afro-validator_1\tUp 1 hour\n"
            "afro-testnet-explorer\tUp 5 minutes\n"
            "afro-web\tExited (0) 1 hour ago\n"
        )
    )

    assert status.mainnet
    assert status.explorer
    assert not status.testnet
    assert not status.website
    assert not status.ceo
    assert status.connected


def test_testnet_validator_does_not_count_as_mainnet():
    status = reconcile(parse_container_lines("afro-testnet-validator\tUp 1 hour"))

    assert status.testnet
    assert not status.mainnet


def test_scenario_mainnet_and_web_running():
    status = reconcile(
        parse_container_lines(
            "afro-validator\tUp 2 hours\n"
            "afro-explorer\tUp 2 hours\n"
            "afro-web\tUp 2 hours\n"
            "afro-testnet-validator\tExited (0) 1 day ago\n"
        )
    )

    assert (status.mainnet, status.testnet, status.explorer, status.website, status.ceo) == (
        True,
        False,
        True,
        True,
        False,
    )


def test_scenario_compose_prefixed_names():
    status = reconcile(
        parse_container_lines(
            "project_afro-validator_1\tUp 2 hours\n"
            "project_afro-web_1\tExited (1) 3 minutes ago\n"
        )
    )

    assert status.mainnet
    assert not status.website


def test_empty_listing_means_everything_stopped():
    status = reconcile([])

    assert not any([status.mainnet, status.testnet, status.explorer, status.website, status.ceo])
    assert status.connected


class TestStackStatusReconciler:
    async def test_listing_command(self):
        executor = FakeExecutor(ok("afro-ceo\tUp 1 minute"))
        reconciler = StackStatusReconciler(executor, timeout=7)

        status = await reconciler.get_status()

        assert status.ceo
        assert executor.calls == [
            (
                [
                    "docker",
                    "ps",
                    "--all",
                    "--filter",
                    "name=afro",
                    "--format",
                    "{{.Names}}\t{{.Status}}",
                ],
                7,
            )
        ]

    async def test_listing_failure_reports_disconnected(self):
        executor = FakeExecutor(failed("Cannot connect to the Docker daemon"))
        reconciler = StackStatusReconciler(executor)

        status = await reconciler.get_status()

        assert not status.connected
        assert not status.mainnet
        assert status.containers == []

    async def test_retries_with_backoff(self):
        executor = FakeExecutor(failed("daemon busy"), ok("afro-web\tUp 1 second"))
        reconciler = StackStatusReconciler(
            executor, retry_policy=RetryPolicy(max_attempts=3, initial_backoff=0.5)
        )

        with patch("afro_ceo.services.status.asyncio.sleep", new=AsyncMock()) as sleep:
            status = await reconciler.get_status()

        assert status.website
        assert status.connected
        assert len(executor.calls) == 2
        sleep.assert_awaited_once_with(0.5)

    async def test_gives_up_after_max_attempts(self):
        executor = FakeExecutor(failed("down"), failed("down"), failed("down"))
        reconciler = StackStatusReconciler(
            executor, retry_policy=RetryPolicy(max_attempts=2, initial_backoff=0)
        )

        status = await reconciler.get_status()

        assert not status.connected
        assert len(executor.calls) == 2


def test_retry_policy_delays():
    assert RetryPolicy().delays() == []
    assert RetryPolicy(max_attempts=4, initial_backoff=1, multiplier=2).delays() == [1, 2, 4]
