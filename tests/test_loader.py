"""
Tests for the account list loader.
"""
import pytest

from mailbox_audit.loader import (
    EmptyInputError,
    InputError,
    MissingColumnError,
    load_accounts,
)


class TestLoadAccounts:
    def test_reads_rows_and_identity_column(self, write_csv):
        path = write_csv("EmailAddress,Department\nalice@co.example,Sales\nbob@co.example,IT\n")
        rows, column = load_accounts(path)
        assert column == "EmailAddress"
        assert [r["EmailAddress"] for r in rows] == ["alice@co.example", "bob@co.example"]

    def test_first_recognized_header_wins(self, write_csv):
        path = write_csv("Name,SamAccountName,EmailAddress\nAlice,alice,alice@co.example\n")
        _, column = load_accounts(path)
        assert column == "SamAccountName"

    def test_each_recognized_column_is_accepted(self, write_csv):
        for header in ("EmailAddress", "UserPrincipalName", "SamAccountName", "Identity", "Mailbox"):
            path = write_csv(f"{header}\nvalue\n", name=f"{header}.csv")
            _, column = load_accounts(path)
            assert column == header

    def test_header_only_file_is_empty(self, write_csv):
        path = write_csv("EmailAddress\n")
        with pytest.raises(EmptyInputError):
            load_accounts(path)

    def test_zero_byte_file_is_empty(self, write_csv):
        path = write_csv("")
        with pytest.raises(EmptyInputError):
            load_accounts(path)

    def test_unrecognized_columns(self, write_csv):
        path = write_csv("Name,Department\nAlice,Sales\n")
        with pytest.raises(MissingColumnError) as exc_info:
            load_accounts(path)
        assert "EmailAddress" in str(exc_info.value)

    def test_header_names_are_case_sensitive(self, write_csv):
        path = write_csv("emailaddress\nalice@co.example\n")
        with pytest.raises(MissingColumnError):
            load_accounts(path)

    def test_byte_order_mark_is_ignored(self, tmp_path):
        path = tmp_path / "excel.csv"
        path.write_text("EmailAddress\nalice@co.example\n", encoding="utf-8-sig")
        rows, column = load_accounts(path)
        assert column == "EmailAddress"
        assert rows[0]["EmailAddress"] == "alice@co.example"

    def test_custom_delimiter(self, write_csv):
        path = write_csv("Identity;Office\nCO\\alice;Berlin\n")
        rows, column = load_accounts(path, delimiter=";")
        assert column == "Identity"
        assert rows[0]["Identity"] == "CO\\alice"

    def test_missing_file(self, tmp_path):
        with pytest.raises(InputError):
            load_accounts(tmp_path / "nope.csv")

    def test_input_errors_share_a_base(self):
        assert issubclass(EmptyInputError, InputError)
        assert issubclass(MissingColumnError, InputError)
