"""Tests for the web API."""

from webapp import main as webapp_main
from webapp.config import Settings


def test_health(client):
	response = client.get("/health")
	assert response.status_code == 200
	assert response.json() == {"status": "ok"}


def test_index(client):
	response = client.get("/")
	assert response.status_code == 200
	assert "/api/validate" in response.text


def test_validate_mixed_lines(client):
	source = "\n".join(
		[
			'printf("%d items", 42);',
			'printf("%d", 1 + 2.5);',
			'printf "hi");',
			'printf("%d", 1 # 2);',
		]
	)
	response = client.post("/api/validate", json={"source": source})
	assert response.status_code == 200
	data = response.json()
	assert data["line_count"] == 4
	assert data["valid_count"] == 1
	assert data["invalid_count"] == 3
	assert data["all_valid"] is False

	ok, mismatch, grammar, lexical = data["results"]
	assert ok["valid"] is True
	assert ok["reason"] is None
	assert ok["expected_types"] == ["Integer"]
	assert ok["supplied_types"] == ["Integer"]
	assert "tokens" not in ok

	assert mismatch["error_kind"] == "type-mismatch"
	assert mismatch["supplied_types"] == ["Float"]
	assert mismatch["span"]["start"]["column"] == 14

	assert grammar["line_number"] == 3
	assert grammar["error_kind"] == "grammar"
	assert grammar["reason"] == "expected LParen, found StringLiteral"
	assert grammar["hint"]

	assert lexical["error_kind"] == "lexical"
	assert "'#'" in lexical["reason"]


def test_validate_with_tokens(client):
	response = client.post("/api/validate", json={"source": 'printf("%s", s);', "include_tokens": True})
	tokens = response.json()["results"][0]["tokens"]
	assert [t["kind"] for t in tokens] == ["Printf", "LParen", "StringLiteral", "Comma", "Identifier", "RParen", "Semicolon"]
	assert tokens[2]["text"] == '"%s"'


def test_validate_options(client):
	line = 'printf("%d", x + 1.5);'
	assert client.post("/api/validate", json={"source": line}).json()["all_valid"] is False
	assert client.post("/api/validate", json={"source": line, "propagate_unknown": True}).json()["all_valid"] is True
	strict = client.post("/api/validate", json={"source": 'printf("%f", 1.2.3);', "strict_numbers": True}).json()
	assert strict["results"][0]["error_kind"] == "lexical"


def test_validate_empty_source(client):
	data = client.post("/api/validate", json={"source": ""}).json()
	assert data["line_count"] == 0
	assert data["all_valid"] is True


def test_validate_keeps_form_feed_inside_line(client):
	data = client.post("/api/validate", json={"source": 'printf("%d",\f 1);'}).json()
	assert data["line_count"] == 1
	assert data["all_valid"] is True


def test_validate_too_many_lines(client, monkeypatch):
	monkeypatch.setattr(webapp_main.settings, "max_lines", 2)
	response = client.post("/api/validate", json={"source": "a\nb\nc"})
	assert response.status_code == 413


def test_validate_requires_source(client):
	assert client.post("/api/validate", json={}).status_code == 422


def test_tokenize(client):
	data = client.post("/api/tokenize", json={"line": "printf(x + 1)"}).json()
	assert data["ok"] is True
	assert data["tokens"][-1]["kind"] == "EndOfInput"
	assert data["tokens"][3] == {
		"kind": "Operator",
		"text": "+",
		"span": {"start": {"line": 1, "column": 10, "index": 9}, "end": {"line": 1, "column": 11, "index": 10}},
	}


def test_tokenize_lex_error(client):
	data = client.post("/api/tokenize", json={"line": "printf(@)"}).json()
	assert data["ok"] is False
	assert data["error"]["character"] == "@"
	assert data["error"]["position"] == 7


def test_ll1(client):
	response = client.post("/api/ll1", json={"line": 'printf("%d", f(1) + 2);'})
	assert response.status_code == 200
	data = response.json()
	assert data["conflicts"] == []
	assert data["grammar"]["start"] == "printf_expr"
	assert data["result"]["accepted"] is True
	assert data["result"]["steps"][0]["action"] == "init"
	assert data["input"]["terminals_with_eof"][-1] == "$"
	assert data["table"]["factor"]["id"] == "factor -> id call_suffix"
	assert data["table"]["factor"]["+"] == ""


def test_ll1_rejects_and_lex_errors(client):
	data = client.post("/api/ll1", json={"line": 'printf("x"', "trace": False}).json()
	assert data["result"]["accepted"] is False
	assert data["result"]["steps"] == []
	assert data["ok"] is True
	assert data["error"] is None


def test_ll1_lex_error_keeps_grammar_analysis(client):
	response = client.post("/api/ll1", json={"line": "printf(#);"})
	assert response.status_code == 200
	data = response.json()
	assert data["ok"] is False
	assert data["error"]["character"] == "#"
	assert data["error"]["position"] == 7
	assert data["input"] is None
	assert data["result"] is None
	assert data["conflicts"] == []
	assert data["grammar"]["start"] == "printf_expr"


def test_settings_env_override(monkeypatch):
	monkeypatch.setenv("PRINTF_VALIDATOR_MAX_LINES", "5")
	monkeypatch.setenv("PRINTF_VALIDATOR_STRICT_STRINGS", "true")
	settings = Settings()
	assert settings.max_lines == 5
	assert settings.default_options().strict_strings is True
	assert settings.default_options().strict_numbers is False
