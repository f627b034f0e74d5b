"""
Tests for the read-only guardian.
"""
import pytest

from mailbox_audit.safety.guardian import SafetyGuardian, SafetyViolation


@pytest.fixture
def guardian():
    return SafetyGuardian()


@pytest.mark.parametrize("command", [
    "Get-Mailbox -Identity 'alice'",
    "get-mailbox -Identity 'alice'",
    "Get-MailboxPermission -Identity 'shared' | Select-Object User, IsInherited",
    "Get-ADPermission -Identity 'shared' | Where-Object { $_.ExtendedRights -like '*Send-As*' }",
    "Get-Mailbox -Identity 'shared' | Select-Object -ExpandProperty GrantSendOnBehalfTo | "
    "ForEach-Object { $_.ToString() }",
    "Get-Mailbox -Identity 'Remove-Mailbox'",
])
def test_read_commands_pass(guardian, command):
    assert guardian.validate_command(command) is True
    assert guardian.violations == []


@pytest.mark.parametrize("command", [
    "Set-Mailbox -Identity 'alice' -HiddenFromAddressListsEnabled $true",
    "Get-Mailbox -Identity 'alice' | Remove-Mailbox -Confirm:$false",
    "Add-MailboxPermission -Identity 'shared' -User 'eve' -AccessRights FullAccess",
    "new-mailbox -Name 'x'",
    "Get-Mailbox -Identity 'x\u2019; Set-Mailbox -Identity y; \u2019'",
    "Get-Mailbox -Identity \u2018alice\u2019 | Remove-Mailbox",
])
def test_write_commands_blocked(guardian, command):
    with pytest.raises(SafetyViolation):
        guardian.validate_command(command)
    assert len(guardian.violations) == 1
    assert guardian.violations[0]["command"] == command


def test_command_without_cmdlet_blocked(guardian):
    with pytest.raises(SafetyViolation):
        guardian.validate_command("whoami")


def test_checks_are_counted(guardian):
    guardian.validate_command("Get-Mailbox")
    with pytest.raises(SafetyViolation):
        guardian.validate_command("Set-Mailbox")
    assert guardian.checks_performed == 2


def test_banner_falls_back_to_ascii(capsys):
    SafetyGuardian.print_banner()
    assert "READ-ONLY MAILBOX AUDIT" in capsys.readouterr().out


def test_audit_summary(guardian):
    guardian.validate_command("Get-Mailbox")
    with pytest.raises(SafetyViolation):
        guardian.validate_command("Remove-Mailbox -Identity 'alice'")
    summary = guardian.get_audit_summary()
    assert summary["checks_performed"] == 2
    assert summary["violations"] == 1
    assert summary["started_at"] == guardian.started_at
