"""Tests for the validation engine and the line driver."""

import pytest

import printf_validator
from printf_validator import (
	ErrorKind,
	PrintfValidatorEngine,
	TokenKind,
	format_result,
	format_tokens,
	main,
	split_lines,
	tokenize,
	validate_file,
	validate_source,
)


def test_engine_returns_artifacts(engine):
	art = engine.validate('printf("%d", 1);', line_number=3)
	assert art.valid
	assert art.line_number == 3
	assert art.tokens[-1].kind == TokenKind.EOF
	assert art.tokens[0].span.start.line == 3
	assert art.duration_ms >= 0


def test_engine_lexical_error_has_no_tokens(engine):
	art = engine.validate("printf(@);")
	assert not art.valid
	assert art.tokens == []
	assert art.outcome.error_kind == ErrorKind.LEXICAL


def test_strict_engine(strict_engine):
	assert strict_engine.validate('printf("%f", 1.2.3);').outcome.error_kind == ErrorKind.LEXICAL
	assert strict_engine.validate('printf("%d, x);').outcome.error_kind == ErrorKind.LEXICAL
	assert strict_engine.validate('printf("%d", x + 1.5);').valid


def test_validate_lines_numbers_from_one_and_strips_terminators(engine):
	results = engine.validate_lines(['printf("a");\n', 'printf("b")\r\n', 'printf("%d", 1);'])
	assert [r.line_number for r in results] == [1, 2, 3]
	assert results[0].line == 'printf("a");'
	assert [r.valid for r in results] == [True, False, True]


def test_one_bad_line_does_not_stop_the_rest():
	results = validate_source('printf("%d", 1 # 2);\nprintf "x";\nprintf("ok");')
	assert [r.valid for r in results] == [False, False, True]
	assert results[0].outcome.error_kind == ErrorKind.LEXICAL
	assert results[1].outcome.error_kind == ErrorKind.GRAMMAR


def test_split_lines_only_breaks_on_line_terminators():
	assert split_lines("a\nb\r\nc\rd") == ["a", "b", "c", "d"]
	assert split_lines("a\fb\x0bc\x1cd\u2028e") == ["a\fb\x0bc\x1cd\u2028e"]
	assert split_lines("") == []


def test_form_feed_inside_a_line_is_whitespace():
	results = validate_source('printf("%d",\f 1);\nprintf("x");')
	assert len(results) == 2
	assert [r.valid for r in results] == [True, True]


def test_validate_file(sample_file):
	results = validate_file(sample_file)
	assert [r.valid for r in results] == [True, True, False, False]


def test_format_result():
	ok, bad = validate_source('printf("%d", 1);\nprintf("%d", 1.5);')
	assert format_result(ok) == "Line 1: valid command."
	assert format_result(bad).startswith("Line 2: invalid command. [type mismatch at position 1")


def test_format_tokens():
	assert format_tokens(tokenize("printf(x)")) == "Printf(printf) LParen(() Identifier(x) RParen()) EndOfInput"


def test_main_with_file(sample_file, capsys):
	code = main([str(sample_file)])
	out = capsys.readouterr().out.splitlines()
	assert code == 1
	assert out[0] == "Line 1: valid command."
	assert out[1] == "Line 2: valid command."
	assert out[2].startswith("Line 3: invalid command. [type mismatch at position 1")
	assert out[3] == "Line 4: invalid command. [expected LParen, found StringLiteral]"
	assert out[4].startswith("Lines: 4 | Valid: 2 | Invalid: 2")


def test_main_all_valid_exits_zero(tmp_path, capsys):
	path = tmp_path / "ok.txt"
	path.write_text('printf("%d", 1);\nprintf("%s", s);\n', encoding="utf-8")
	assert main([str(path)]) == 0
	assert "Invalid: 0" in capsys.readouterr().out


def test_main_options(tmp_path, capsys):
	path = tmp_path / "opts.txt"
	path.write_text('printf("%d", x + 1.5);\n', encoding="utf-8")
	assert main([str(path)]) == 1
	assert main([str(path), "--propagate-unknown", "--tokens"]) == 0
	out = capsys.readouterr().out
	assert "Identifier(x) Operator(+) Number(1.5)" in out


def test_main_prompts_for_filename(sample_file, monkeypatch, capsys):
	monkeypatch.setattr("builtins.input", lambda prompt: str(sample_file))
	assert main([]) == 1
	assert "Line 4: invalid command." in capsys.readouterr().out


def test_main_missing_file(tmp_path, capsys):
	assert main([str(tmp_path / "nope.txt")]) == 2
	assert "File not found" in capsys.readouterr().err


def test_module_logger_name():
	assert printf_validator.logger.name == "printf_validator"


def test_engine_logs_invalid_lines(engine, caplog):
	with caplog.at_level("DEBUG", logger="printf_validator"):
		engine.validate('printf("%d");', line_number=5)
	assert any("line 5 invalid" in r.getMessage() for r in caplog.records)


def test_main_log_level_is_case_insensitive(tmp_path, capsys):
	path = tmp_path / "ok.txt"
	path.write_text('printf("%d", 1);\n', encoding="utf-8")
	assert main([str(path), "--log-level", "debug"]) == 0


def test_main_rejects_unknown_log_level(tmp_path, capsys):
	path = tmp_path / "ok.txt"
	path.write_text('printf("%d", 1);\n', encoding="utf-8")
	with pytest.raises(SystemExit) as e:
		main([str(path), "--log-level", "bogus"])
	assert e.value.code == 2
	assert "--log-level" in capsys.readouterr().err
