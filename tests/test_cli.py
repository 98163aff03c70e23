import pytest

from chip8vm.cli import build_parser, main


def write_rom(tmp_path, data, name="prog.ch8"):
    path = tmp_path / name
    path.write_bytes(bytes(data))
    return path


def test_headless_run_with_outputs(tmp_path, capsys):
    rom = write_rom(tmp_path, [0x60, 0x00, 0xF0, 0x29, 0xD0, 0x05, 0x12, 0x06])
    png = tmp_path / "out.png"

    status = main([str(rom), "--cycles", "10", "--show-display", "--stats", "--png", str(png)])

    assert status == 0
    assert png.exists()
    out = capsys.readouterr().out
    assert "Execution completed: 10 instructions" in out
    assert "Program counter: 0x206" in out
    assert "██████" in out
    assert "display_writes" in out


def test_missing_rom(tmp_path, capsys):
    assert main([str(tmp_path / "nope.ch8")]) == 1
    assert "not found" in capsys.readouterr().out


def test_oversized_rom(tmp_path, capsys):
    rom = write_rom(tmp_path, bytes(4000))
    assert main([str(rom)]) == 1
    assert "ROM too large" in capsys.readouterr().out


def test_fault_reports_crash(tmp_path, capsys):
    rom = write_rom(tmp_path, [0x00, 0xEE])
    assert main([str(rom), "--cycles", "5"]) == 1
    assert "Emulator crashed" in capsys.readouterr().out


def test_quirk_flags_parse():
    args = build_parser().parse_args(["rom.ch8", "--quirk", "memory", "--quirk", "logic"])
    assert args.quirk == ["memory", "logic"]
    assert args.interactive is False


def test_debug_writes_trace_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    rom = write_rom(tmp_path, [0x60, 0x01, 0x12, 0x02], name="loop.ch8")
    assert main([str(rom), "--cycles", "3", "--debug"]) == 0

    log = (tmp_path / "chip8_debug_loop.log").read_text()
    assert "Executing: 0x6001" in log


@pytest.mark.parametrize("rate", ["0", "-10"])
def test_non_positive_rate_rejected(tmp_path, capsys, rate):
    rom = write_rom(tmp_path, [0x12, 0x00])
    with pytest.raises(SystemExit) as excinfo:
        main([str(rom), "--rate", rate])
    assert excinfo.value.code == 2
    assert "must be a positive integer" in capsys.readouterr().err
