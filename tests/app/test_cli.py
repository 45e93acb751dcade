from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from rolegate.ui import cli
from tests.helpers.engine import addr

if TYPE_CHECKING:
    from pathlib import Path

ALICE = addr(0xA11CE)


@pytest.fixture(autouse=True)
def data_dir(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    monkeypatch.setenv("ROLEGATE_DATA_DIR", str(tmp_path_factory.mktemp("rolegate")))


def test_eligible_add_list_remove(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["eligible", "add", ALICE.upper().replace("0X", "0x")])
    cli.main(["eligible", "list"])
    cli.main(["eligible", "remove", ALICE])
    cli.main(["eligible", "remove", ALICE])

    out = capsys.readouterr().out.splitlines()
    assert out == ["added", ALICE, "removed", "not on the list"]


def test_eligible_upload(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    upload = tmp_path / "list.txt"
    upload.write_text(f"{ALICE}\nshort\n{addr(2)}\n", encoding="utf-8")

    cli.main(["eligible", "upload", str(upload)])

    assert "2 addresses" in capsys.readouterr().out


def test_status_and_owner(capsys: pytest.CaptureFixture[str]) -> None:
    cli.main(["eligible", "add", ALICE])
    capsys.readouterr()

    cli.main(["status", ALICE])
    cli.main(["owner", ALICE])

    assert capsys.readouterr().out.splitlines() == [f"{ALICE}: eligible", "unclaimed"]


def test_invalid_address_exits_with_code_2() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["status", "0x12"])

    assert excinfo.value.code == 2


def test_inspect_tx_without_ledger_exits_with_code_2() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["inspect-tx", "0x" + "ab" * 32])

    assert excinfo.value.code == 2


def test_unknown_command_is_rejected_by_argparse() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["frobnicate"])

    assert excinfo.value.code == 2


def test_run_dispatches_to_service(monkeypatch: pytest.MonkeyPatch) -> None:
    called: list[bool] = []
    monkeypatch.setattr(cli, "_run", lambda: called.append(True))

    cli.main(["run"])

    assert called == [True]
