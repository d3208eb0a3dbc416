from __future__ import annotations

import logging
import sys
from dataclasses import is_dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from pydantic import BaseModel

from printf_validator import (
	LOG_DATE_FORMAT,
	LOG_FORMAT,
	LexError,
	PrintfValidatorEngine,
	Token,
	TokenKind,
	ValidationArtifacts,
	ValidatorOptions,
	split_lines,
	tokenize,
)
from webapp.config import settings
from webapp.ll1 import EOF, analyse_grammar, terminals_for_tokens

logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, stream=sys.stdout)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.api_title, version=settings.api_version)

app.add_middleware(
	CORSMiddleware,
	allow_origins=settings.cors_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

# The grammar is fixed, so its analysis is computed once.
GRAMMAR_ANALYSIS = analyse_grammar()


class OptionsModel(BaseModel):
	# None falls back to the server-wide default from settings.
	strict_numbers: Optional[bool] = None
	strict_strings: Optional[bool] = None
	propagate_unknown: Optional[bool] = None

	def resolve(self) -> ValidatorOptions:
		defaults = settings.default_options()
		return ValidatorOptions(
			strict_numbers=defaults.strict_numbers if self.strict_numbers is None else self.strict_numbers,
			strict_strings=defaults.strict_strings if self.strict_strings is None else self.strict_strings,
			propagate_unknown=defaults.propagate_unknown if self.propagate_unknown is None else self.propagate_unknown,
		)


class ValidateRequest(OptionsModel):
	# One printf call per line.
	source: str
	include_tokens: bool = False


class TokenizeRequest(OptionsModel):
	line: str


class LL1Request(BaseModel):
	line: str
	trace: bool = True


def _to_json(obj: Any, *, depth: int = 0, max_depth: int = 12) -> Any:
	"""Convert validator artifacts (dataclasses, enums, lists) into JSON-safe structures."""
	if depth > max_depth:
		return {"_truncated": True}
	if obj is None or isinstance(obj, (str, int, float, bool)):
		return obj
	if isinstance(obj, Enum):
		return obj.value
	if isinstance(obj, (list, tuple)):
		return [_to_json(x, depth=depth + 1, max_depth=max_depth) for x in obj]
	if isinstance(obj, dict):
		return {str(k): _to_json(v, depth=depth + 1, max_depth=max_depth) for k, v in obj.items()}
	if is_dataclass(obj):
		return {k: _to_json(v, depth=depth + 1, max_depth=max_depth) for k, v in obj.__dict__.items()}
	return str(obj)


def _token_json(token: Token) -> Dict[str, Any]:
	return {"kind": token.kind.value, "text": token.text, "span": _to_json(token.span)}


def _result_json(art: ValidationArtifacts, include_tokens: bool) -> Dict[str, Any]:
	outcome = art.outcome
	data: Dict[str, Any] = {
		"line_number": art.line_number,
		"line": art.line,
		"valid": outcome.valid,
		"reason": outcome.reason,
		"error_kind": _to_json(outcome.error_kind),
		"hint": outcome.diagnostic.hint if outcome.diagnostic else None,
		"span": _to_json(outcome.diagnostic.span) if outcome.diagnostic else None,
		"specifiers": [s.text for s in outcome.specifiers],
		"expected_types": _to_json(outcome.expected_types),
		"supplied_types": _to_json(outcome.supplied_types),
		"duration_ms": art.duration_ms,
	}
	if include_tokens:
		data["tokens"] = [_token_json(t) for t in art.tokens if t.kind != TokenKind.EOF]
	return data


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
	return HTMLResponse(
		"<h2>Printf Validator API</h2><p>POST <code>/api/validate</code> with JSON: <code>{\"source\": \"printf(\\\"%d\\\", 1);\"}</code></p>"
	)


@app.get("/health")
def health() -> Dict[str, str]:
	return {"status": "ok"}


@app.post("/api/validate")
def validate_source(req: ValidateRequest) -> Dict[str, Any]:
	lines = split_lines(req.source)
	if len(lines) > settings.max_lines:
		raise HTTPException(status_code=413, detail=f"Too many lines: {len(lines)} (limit {settings.max_lines})")
	engine = PrintfValidatorEngine(req.resolve())
	results: List[ValidationArtifacts] = engine.validate_lines(lines)
	invalid = sum(1 for r in results if not r.valid)
	logger.info("Validated %d line(s), %d invalid", len(results), invalid)
	return {
		"line_count": len(results),
		"valid_count": len(results) - invalid,
		"invalid_count": invalid,
		"all_valid": invalid == 0,
		"results": [_result_json(r, req.include_tokens) for r in results],
	}


def _lex_error_json(exc: LexError) -> Dict[str, Any]:
	return {"message": exc.message, "character": exc.character, "position": exc.position, "span": _to_json(exc.diagnostic.span)}


@app.post("/api/tokenize")
def tokenize_line(req: TokenizeRequest) -> Dict[str, Any]:
	options = req.resolve()
	try:
		tokens = tokenize(req.line, strict_numbers=options.strict_numbers, strict_strings=options.strict_strings)
	except LexError as exc:
		return {"ok": False, "tokens": [], "error": _lex_error_json(exc)}
	return {"ok": True, "tokens": [_token_json(t) for t in tokens], "error": None}


@app.post("/api/ll1")
def ll1_parse(req: LL1Request) -> Dict[str, Any]:
	"""FIRST/FOLLOW sets, LL(1) table and a table-driven parse of the lexed line.

	A line that fails to lex still gets the grammar analysis, with `ok: false` and no parse result.
	"""
	analysis = GRAMMAR_ANALYSIS
	grammar = analysis.grammar

	terminals_sorted = sorted(grammar.terminals | {EOF})
	table_out: Dict[str, Dict[str, str]] = {}
	for nt in sorted(grammar.nonterminals):
		row = analysis.table.get(nt, {})
		table_out[nt] = {t: str(row[t]) if t in row else "" for t in terminals_sorted}

	data: Dict[str, Any] = {
		"ok": True,
		"error": None,
		"grammar": {
			"start": grammar.start,
			"nonterminals": sorted(grammar.nonterminals),
			"terminals": terminals_sorted,
			"productions": [str(p) for p in grammar.productions],
		},
		"first": {k: sorted(v) for k, v in analysis.first.items()},
		"follow": {k: sorted(v) for k, v in analysis.follow.items()},
		"table": table_out,
		"conflicts": analysis.conflicts,
		"input": None,
		"result": None,
	}

	try:
		tokens = tokenize(req.line)
	except LexError as exc:
		data["ok"] = False
		data["error"] = _lex_error_json(exc)
		return data

	terminals = terminals_for_tokens(tokens)
	result = analysis.recognise(tokens, trace=req.trace)
	data["input"] = {
		"terminals": terminals,
		"terminals_with_eof": terminals + [EOF],
	}
	data["result"] = {
		"accepted": result.accepted,
		"error": result.error,
		"steps": [
			{
				"stack": step.stack,
				"remaining_input": step.remaining_input,
				"action": step.action,
			}
			for step in result.steps
		],
	}
	return data


if __name__ == "__main__":
	import uvicorn

	uvicorn.run("webapp.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())
