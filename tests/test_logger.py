import re

from distrifein.logger import Logger, get_logger

LINE_PATTERN = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d{3}\] (.*)$")


def test_get_logger_returns_singleton(capsys):
    first = get_logger()
    second = get_logger()
    assert first is second
    second.log("shared instance")
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 1
    assert LINE_PATTERN.match(out[0]).group(1) == "shared instance"


def test_logs_to_stdout_with_timestamp(capsys):
    logger = Logger()
    logger.log("hello world")
    out = capsys.readouterr().out.splitlines()
    assert len(out) == 1
    match = LINE_PATTERN.match(out[0])
    assert match is not None
    assert match.group(1) == "hello world"


def test_logs_to_file(tmp_path, capsys):
    path = tmp_path / "node.log"
    logger = Logger()
    logger.set_output_file(path)
    logger.log("first")
    logger.log("second")
    logger.close()
    lines = path.read_text(encoding="utf-8").splitlines()
    assert [LINE_PATTERN.match(line).group(1) for line in lines] == ["first", "second"]
    assert capsys.readouterr().out == ""


def test_output_file_is_appended(tmp_path):
    path = tmp_path / "node.log"
    path.write_text("existing\n", encoding="utf-8")
    logger = Logger()
    logger.set_output_file(path)
    logger.log("added")
    logger.close()
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "existing"
    assert LINE_PATTERN.match(lines[1]).group(1) == "added"


def test_unopenable_file_keeps_stdout(tmp_path, capsys):
    logger = Logger()
    logger.set_output_file(tmp_path)
    logger.log("still here")
    out = capsys.readouterr().out
    assert out.rstrip("\n").endswith("] still here")


def test_close_returns_to_stdout(tmp_path, capsys):
    path = tmp_path / "node.log"
    logger = Logger()
    logger.set_output_file(path)
    logger.close()
    logger.log("back")
    assert "back" in capsys.readouterr().out
    assert path.read_text(encoding="utf-8") == ""