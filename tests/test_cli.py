import io

from distrifein.cli import main


def test_too_few_arguments(capsys):
    assert main(["1", "2"]) == 1
    assert "Usage" in capsys.readouterr().out


def test_invalid_test_type(capsys):
    assert main(["1", "2,3", "5"]) == 1
    assert "Invalid test type" in capsys.readouterr().out


def test_invalid_peer_list(capsys):
    assert main(["1", "a,b", "0"]) == 1
    assert "Usage" in capsys.readouterr().out


def test_unknown_node_id(capsys):
    assert main(["42", "1", "0"]) == 1
    assert "no port known" in capsys.readouterr().out


def test_beb_node_exits_on_command(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("3\n"))
    assert main(["7", "6", "0"]) == 0


def test_rb_node_exits_at_end_of_input(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    assert main(["6", "7", "1"]) == 0


def test_urb_node_exits_on_command(monkeypatch):
    monkeypatch.setattr("sys.stdin", io.StringIO("3\n"))
    assert main(["5", "7", "2"]) == 0