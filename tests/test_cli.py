import io

import pytest

from screen2mtk.cli import main


def run(monkeypatch, capsys, text, *argv):
    monkeypatch.setattr("sys.stdin", io.StringIO(text))
    main(["--no-resolve", *argv])
    return capsys.readouterr()


def test_stdin_to_stdout_default_zone(monkeypatch, capsys, sample_export):
    out = run(monkeypatch, capsys, sample_export).out
    assert out.startswith("/ip firewall address-list\n")
    assert "/ip firewall filter" in out
    assert "# ID: 1 " in out
    assert "# ID: 4 " not in out


def test_zone_filter_excludes_other_zones(monkeypatch, capsys, sample_export):
    out = run(monkeypatch, capsys, sample_export, "-z", "DMZ").out
    assert "add chain=" not in out
    assert "add list=" not in out


def test_all_zones(monkeypatch, capsys):
    text = ('set address "Trust" "h" 10.0.0.1 255.255.255.255\n'
            'set policy id 1 from "Trust" to "Untrust"  "h" "any" "SSH" permit\n')
    assert "add chain=" not in run(monkeypatch, capsys, text).out
    assert "add chain=Trust__Untrust" in run(monkeypatch, capsys, text, "--all-zones").out


def test_diagnostics_kept_out_of_script(monkeypatch, capsys, caplog):
    text = 'set policy id 1 from "Clients" to "Trust"  "any" "ghost" "HTTP" permit\n'
    captured = run(monkeypatch, capsys, text)
    assert "Clients" in captured.out
    assert "not found" not in captured.out
    assert "Trust ghost not found" in caplog.text


def test_fatal_error_exits_without_output(monkeypatch, capsys):
    text = 'set policy id 1 from "Clients" to "Trust"  "any" "any" "NOPE" permit\n'
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, capsys, text)
    assert exc.value.code == 1
    captured = capsys.readouterr()
    assert captured.out == ""


def test_parse_error_exits(monkeypatch, capsys):
    with pytest.raises(SystemExit) as exc:
        run(monkeypatch, capsys, 'set address "Trust"\n')
    assert exc.value.code == 1


def test_file_input_output_and_settings(tmp_path, capsys):
    src = tmp_path / "screenos.cfg"
    src.write_text('set policy id 1 from "DMZ" to "Untrust"  "any" "any" "APP" permit\n')
    cfg = tmp_path / "settings.yaml"
    cfg.write_text("zones: [DMZ]\nservices:\n  APP: [tcp/7000]\n")
    dest = tmp_path / "out" / "fw.rsc"

    main(["-c", str(cfg), "-o", str(dest), str(src)])

    assert capsys.readouterr().out == ""
    assert "protocol=tcp dst-port=7000" in dest.read_text()


def test_missing_input_file(tmp_path):
    with pytest.raises(SystemExit) as exc:
        main([str(tmp_path / "nope.cfg")])
    assert exc.value.code == 1


def test_init_config(tmp_path):
    dest = tmp_path / "settings.yaml"
    main(["--init-config", str(dest)])
    assert "zones:" in dest.read_text()


BAD_UTF8 = b'set address "Trust" "caf\xe9" 10.0.0.1 255.255.255.255\n'


def test_invalid_utf8_on_stdin_exits(monkeypatch, capsys, caplog):
    monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(BAD_UTF8), encoding="utf-8"))
    with pytest.raises(SystemExit) as exc:
        main(["--no-resolve"])
    assert exc.value.code == 1
    assert capsys.readouterr().out == ""
    assert "Cannot read ScreenOS config" in caplog.text


def test_invalid_utf8_in_file_exits(tmp_path, capsys, caplog):
    src = tmp_path / "screenos.cfg"
    src.write_bytes(BAD_UTF8)
    with pytest.raises(SystemExit) as exc:
        main(["--no-resolve", str(src)])
    assert exc.value.code == 1
    assert capsys.readouterr().out == ""
    assert "Cannot read ScreenOS config" in caplog.text
