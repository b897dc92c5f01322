"""Tests for the raw command allow-list."""

import pytest

from afro_ceo.core.command_policy import DEFAULT_ALLOWED_PREFIXES, CommandPolicy, validate_prefixes
from afro_ceo.core.exceptions import ConfigurationError


@pytest.fixture
def policy() -> CommandPolicy:
    return CommandPolicy()


@pytest.mark.parametrize(
    "command",
    [
        "docker ps",
        "docker ps --all",
        'docker ps --format "{{.Names}}\\t{{.Status}}"',
        "docker logs afro-validator --tail 100",
        "docker-compose up -d afro-web",
        "docker compose restart afro-explorer",
    ],
)
def test_allowed_commands(policy, command):
    permitted, reason = policy.check(command)
    assert permitted, reason


@pytest.mark.parametrize(
    "command, fragment",
    [
        ("", "empty"),
        ("   ", "empty"),
        ("rm -rf /", "no allow-listed prefix"),
        ("docker rm -f afro-web", "no allow-listed prefix"),
        ("docker-compose up afro-web", "no allow-listed prefix"),
        ("docker ps; rm -rf /", "metacharacter"),
        ("docker ps | sh", "metacharacter"),
        ("docker logs $(whoami)", "metacharacter"),
        ("docker ps && reboot", "metacharacter"),
        ("docker logs `id`", "metacharacter"),
        ("docker ps > /etc/passwd", "metacharacter"),
        ('docker logs "unterminated', "unparsable"),
    ],
)
def test_rejected_commands(policy, command, fragment):
    permitted, reason = policy.check(command)
    assert not permitted
    assert fragment in reason


def test_prefix_matching_is_token_wise():
    policy = CommandPolicy(["docker ps"])

    assert not policy.check("docker psx")[0]
    assert policy.check("docker  ps   -a")[0]


def test_split_returns_argv(policy):
    assert policy.split('docker logs "afro-web" --tail 5') == [
        "docker",
        "logs",
        "afro-web",
        "--tail",
        "5",
    ]


def test_default_prefixes_are_valid():
    assert len(validate_prefixes(DEFAULT_ALLOWED_PREFIXES)) == len(DEFAULT_ALLOWED_PREFIXES)


@pytest.mark.parametrize(
    "prefixes",
    [
        [],
        [""],
        ["docker ps", "  "],
        ["docker ps; rm"],
        ["docker logs | grep"],
        ['docker "ps'],
    ],
)
def test_invalid_allow_lists_fail_fast(prefixes):
    with pytest.raises(ConfigurationError):
        CommandPolicy(prefixes)
