"""Line-oriented validator for constrained printf calls: lexer, parser, type inference and a small CLI driver."""

from __future__ import annotations

import argparse
import io
import logging
import re
import sys
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# ---------------------------------------------------------------------------
# Diagnostic infrastructure


class ErrorKind(Enum):
	LEXICAL = "lexical"
	GRAMMAR = "grammar"
	COUNT_MISMATCH = "count-mismatch"
	TYPE_MISMATCH = "type-mismatch"


@dataclass(frozen=True)
class Position:
	line: int
	column: int
	index: int


@dataclass(frozen=True)
class Span:
	start: Position
	end: Position


@dataclass(frozen=True)
class Diagnostic:
	kind: ErrorKind
	message: str
	span: Optional[Span] = None
	hint: Optional[str] = None


def combine_span(a: Span, b: Span) -> Span:
	return Span(start=a.start, end=b.end)


class ValidationError(Exception):
	"""Base class for everything that makes a line invalid.

	Raised inside the lexer and parser only; `Parser.parse` and
	`PrintfValidatorEngine.validate` turn it into an invalid `ParseOutcome`.
	"""

	kind = ErrorKind.GRAMMAR

	def __init__(self, message: str, span: Optional[Span] = None, hint: Optional[str] = None) -> None:
		super().__init__(message)
		self.diagnostic = Diagnostic(self.kind, message, span, hint)

	@property
	def message(self) -> str:
		return self.diagnostic.message


class LexError(ValidationError):
	kind = ErrorKind.LEXICAL

	def __init__(self, character: str, position: int, span: Optional[Span] = None, message: Optional[str] = None) -> None:
		self.character = character
		self.position = position
		if message is None:
			message = f"unexpected character '{character}' at column {position + 1}"
		super().__init__(message, span)


class GrammarError(ValidationError):
	kind = ErrorKind.GRAMMAR


class CountMismatchError(ValidationError):
	kind = ErrorKind.COUNT_MISMATCH

	def __init__(self, specifier_count: int, argument_count: int, span: Optional[Span] = None) -> None:
		self.specifier_count = specifier_count
		self.argument_count = argument_count
		super().__init__(
			f"specifier/argument count mismatch: {specifier_count} specifier(s), {argument_count} argument(s)",
			span,
			hint="Every format specifier in the string needs exactly one argument after it.",
		)


class TypeMismatchError(ValidationError):
	kind = ErrorKind.TYPE_MISMATCH

	def __init__(self, position: int, specifier: "Specifier", supplied: "ValueType", span: Optional[Span] = None) -> None:
		self.position = position
		self.specifier = specifier
		self.supplied = supplied
		super().__init__(
			f"type mismatch at position {position}: '{specifier.text}' expects {specifier.value_type.value}, got {supplied.value}",
			span,
		)


# ---------------------------------------------------------------------------
# Lexer


class TokenKind(Enum):
	PRINTF = "Printf"
	LPAREN = "LParen"
	RPAREN = "RParen"
	SEMICOLON = "Semicolon"
	STRING_LITERAL = "StringLiteral"
	COMMA = "Comma"
	IDENTIFIER = "Identifier"
	NUMBER = "Number"
	OPERATOR = "Operator"
	# Lexed outside string literals but never consumed by the grammar.
	FORMAT_SPECIFIER = "FormatSpecifier"
	# Reserved, not produced.
	FUNCTION = "Function"
	EOF = "EndOfInput"


PRINTF_KEYWORD = "printf"

PUNCTUATION = {
	"(": TokenKind.LPAREN,
	")": TokenKind.RPAREN,
	";": TokenKind.SEMICOLON,
	",": TokenKind.COMMA,
}

OPERATORS = "+-*/"


@dataclass(frozen=True)
class Token:
	kind: TokenKind
	text: str
	span: Span


class Lexer:
	def __init__(self, source: str, line: int = 1, *, strict_numbers: bool = False, strict_strings: bool = False) -> None:
		self.source = source
		self.line = line
		self.strict_numbers = strict_numbers
		self.strict_strings = strict_strings
		self.length = len(source)
		self.index = 0

	def tokenize(self) -> List[Token]:
		tokens: List[Token] = []
		while not self._is_eof():
			ch = self._peek()
			if ch.isspace():
				self._advance()
			elif self.source.startswith(PRINTF_KEYWORD, self.index):
				start = self._current_position()
				self.index += len(PRINTF_KEYWORD)
				tokens.append(self._make_token(TokenKind.PRINTF, PRINTF_KEYWORD, start))
			elif ch in PUNCTUATION:
				start = self._current_position()
				self._advance()
				tokens.append(self._make_token(PUNCTUATION[ch], ch, start))
			elif ch == '"':
				tokens.append(self._consume_string())
			elif ch == "%":
				tokens.append(self._consume_format_specifier())
			elif ch.isalpha():
				tokens.append(self._consume_identifier())
			elif ch.isdecimal():
				tokens.append(self._consume_number())
			elif ch in OPERATORS:
				start = self._current_position()
				self._advance()
				tokens.append(self._make_token(TokenKind.OPERATOR, ch, start))
			else:
				start = self._current_position()
				self._advance()
				raise LexError(ch, start.index, Span(start, self._current_position()))
		tokens.append(self._make_token(TokenKind.EOF, "", self._current_position()))
		return tokens

	def _consume_string(self) -> Token:
		start = self._current_position()
		self._advance()  # opening quote
		while not self._is_eof() and self._peek() != '"':
			self._advance()
		if self._is_eof():
			if self.strict_strings:
				raise LexError('"', start.index, Span(start, self._current_position()), message=f"unterminated string literal starting at column {start.column}")
			logger.debug("Unterminated string literal at column %d kept as-is", start.column)
		else:
			self._advance()  # closing quote
		return self._make_token(TokenKind.STRING_LITERAL, self.source[start.index : self.index], start)

	def _consume_format_specifier(self) -> Token:
		start = self._current_position()
		self._advance()  # '%'
		self._consume_while(lambda c: c.isalpha() or c.isdecimal() or c == ".")
		return self._make_token(TokenKind.FORMAT_SPECIFIER, self.source[start.index : self.index], start)

	def _consume_identifier(self) -> Token:
		start = self._current_position()
		lexeme = self._consume_while(lambda c: c.isalpha() or c.isdecimal() or c == "_")
		return self._make_token(TokenKind.IDENTIFIER, lexeme, start)

	def _consume_number(self) -> Token:
		start = self._current_position()
		lexeme = self._consume_while(lambda c: c.isdecimal() or c == ".")
		if self.strict_numbers and lexeme.count(".") > 1:
			second_dot = lexeme.index(".", lexeme.index(".") + 1)
			raise LexError(".", start.index + second_dot, Span(start, self._current_position()), message=f"malformed number '{lexeme}' at column {start.column}")
		return self._make_token(TokenKind.NUMBER, lexeme, start)

	def _consume_while(self, predicate) -> str:
		start_index = self.index
		while not self._is_eof() and predicate(self._peek()):
			self._advance()
		return self.source[start_index : self.index]

	def _current_position(self) -> Position:
		return Position(self.line, self.index + 1, self.index)

	def _make_token(self, kind: TokenKind, text: str, start: Position) -> Token:
		return Token(kind, text, Span(start, self._current_position()))

	def _advance(self) -> str:
		ch = self.source[self.index]
		self.index += 1
		return ch

	def _peek(self) -> str:
		return self.source[self.index]

	def _is_eof(self) -> bool:
		return self.index >= self.length


def tokenize(line: str, line_number: int = 1, *, strict_numbers: bool = False, strict_strings: bool = False) -> List[Token]:
	"""Scan one line into tokens. Raises `LexError` on the first unrecognised character."""
	return Lexer(line, line_number, strict_numbers=strict_numbers, strict_strings=strict_strings).tokenize()


# ---------------------------------------------------------------------------
# Type system and format specifiers


class ValueType(Enum):
	INTEGER = "Integer"
	FLOAT = "Float"
	STRING = "String"
	CHAR = "Char"
	UNKNOWN = "Unknown"

	def compatible_with(self, other: "ValueType") -> bool:
		if self is ValueType.UNKNOWN or other is ValueType.UNKNOWN:
			return True
		return self is other


SPECIFIER_PATTERN = re.compile(r"%[\w.]*", re.ASCII)
PRECISION_FLOAT_PATTERN = re.compile(r"%\.[0-9]f")

SPECIFIER_TYPES = {
	"%d": ValueType.INTEGER,
	"%i": ValueType.INTEGER,
	"%f": ValueType.FLOAT,
	"%s": ValueType.STRING,
	"%c": ValueType.CHAR,
}


@dataclass(frozen=True)
class Specifier:
	text: str
	value_type: ValueType
	offset: int


def classify_specifier(text: str) -> ValueType:
	if text in SPECIFIER_TYPES:
		return SPECIFIER_TYPES[text]
	if PRECISION_FLOAT_PATTERN.fullmatch(text):
		return ValueType.FLOAT
	return ValueType.UNKNOWN


def extract_specifiers(literal: str) -> List[Specifier]:
	"""Find every `%` directive in the raw literal text (quotes included).

	A lone `%` or an unsupported directive such as `%5d` still counts as a
	specifier; it just types as Unknown.
	"""
	return [Specifier(m.group(), classify_specifier(m.group()), m.start()) for m in SPECIFIER_PATTERN.finditer(literal)]


def combine_types(left: ValueType, right: ValueType, *, propagate_unknown: bool = False) -> ValueType:
	# Without propagate_unknown an Unknown operand is absorbed into Integer/Float.
	if propagate_unknown and ValueType.UNKNOWN in (left, right):
		return ValueType.UNKNOWN
	if ValueType.FLOAT in (left, right):
		return ValueType.FLOAT
	return ValueType.INTEGER


# ---------------------------------------------------------------------------
# Parser and type checker


@dataclass(frozen=True)
class TypedExpression:
	value_type: ValueType
	span: Span


@dataclass(frozen=True)
class ParseOutcome:
	valid: bool
	diagnostic: Optional[Diagnostic] = None
	specifiers: List[Specifier] = field(default_factory=list)
	arguments: List[TypedExpression] = field(default_factory=list)

	@classmethod
	def invalid(cls, diagnostic: Diagnostic, specifiers: Optional[List[Specifier]] = None, arguments: Optional[List[TypedExpression]] = None) -> "ParseOutcome":
		return cls(valid=False, diagnostic=diagnostic, specifiers=list(specifiers or []), arguments=list(arguments or []))

	@property
	def reason(self) -> Optional[str]:
		return self.diagnostic.message if self.diagnostic else None

	@property
	def error_kind(self) -> Optional[ErrorKind]:
		return self.diagnostic.kind if self.diagnostic else None

	@property
	def expected_types(self) -> List[ValueType]:
		return [s.value_type for s in self.specifiers]

	@property
	def supplied_types(self) -> List[ValueType]:
		return [a.value_type for a in self.arguments]


class Parser:
	"""Recursive-descent parser for `printf(STRING [, expr, ...]);` that infers argument types.

	State is reset at the start of every `parse()` call, so parsing the same
	token list twice gives the same outcome.
	"""

	def __init__(self, tokens: Sequence[Token], *, propagate_unknown: bool = False) -> None:
		if not tokens or tokens[-1].kind != TokenKind.EOF:
			raise ValueError("token sequence must end with an EndOfInput token")
		self.tokens = list(tokens)
		self.propagate_unknown = propagate_unknown
		self.index = 0
		self.specifiers: List[Specifier] = []
		self.arguments: List[TypedExpression] = []

	def parse(self) -> ParseOutcome:
		self.index = 0
		self.specifiers = []
		self.arguments = []
		try:
			self._parse_printf_expr()
			self._check_arguments()
		except ValidationError as exc:
			return ParseOutcome.invalid(exc.diagnostic, self.specifiers, self.arguments)
		return ParseOutcome(valid=True, specifiers=list(self.specifiers), arguments=list(self.arguments))

	def _parse_printf_expr(self) -> None:
		self._match(TokenKind.PRINTF)
		self._match(TokenKind.LPAREN)
		self._parse_printf_body()
		self._match(TokenKind.RPAREN)
		self._match(TokenKind.SEMICOLON)
		self._match(TokenKind.EOF)

	def _parse_printf_body(self) -> None:
		literal = self._match(TokenKind.STRING_LITERAL)
		self.specifiers = extract_specifiers(literal.text)
		if self._check(TokenKind.COMMA):
			self._advance_token()
			self.arguments = self._parse_arg_list()
		else:
			self.arguments = []

	def _parse_arg_list(self) -> List[TypedExpression]:
		args = [self._parse_expression()]
		while self._check(TokenKind.COMMA):
			self._advance_token()
			args.append(self._parse_expression())
		return args

	def _parse_expression(self) -> TypedExpression:
		return self._parse_binary(self._parse_term, "+-")

	def _parse_term(self) -> TypedExpression:
		return self._parse_binary(self._parse_factor, "*/")

	def _parse_binary(self, operand, operators: str) -> TypedExpression:
		expr = operand()
		while self._check(TokenKind.OPERATOR) and self._current().text in operators:
			self._advance_token()
			right = operand()
			value_type = combine_types(expr.value_type, right.value_type, propagate_unknown=self.propagate_unknown)
			expr = TypedExpression(value_type, combine_span(expr.span, right.span))
		return expr

	def _parse_factor(self) -> TypedExpression:
		token = self._current()
		if token.kind == TokenKind.IDENTIFIER:
			self._advance_token()
			span = token.span
			if self._check(TokenKind.LPAREN):
				# Call arguments are validated but neither counted nor typed.
				self._advance_token()
				if not self._check(TokenKind.RPAREN):
					self._parse_arg_list()
				span = combine_span(span, self._match(TokenKind.RPAREN).span)
			return TypedExpression(ValueType.UNKNOWN, span)
		if token.kind == TokenKind.NUMBER:
			self._advance_token()
			value_type = ValueType.FLOAT if "." in token.text else ValueType.INTEGER
			return TypedExpression(value_type, token.span)
		if token.kind == TokenKind.LPAREN:
			self._advance_token()
			inner = self._parse_expression()
			rparen = self._match(TokenKind.RPAREN)
			return TypedExpression(inner.value_type, combine_span(token.span, rparen.span))
		raise GrammarError(
			f"expected {TokenKind.IDENTIFIER.value}, {TokenKind.NUMBER.value} or {TokenKind.LPAREN.value}, found {token.kind.value}",
			token.span,
			hint="Arguments are numbers, identifiers, calls like f(x) or parenthesised arithmetic.",
		)

	def _check_arguments(self) -> None:
		if len(self.specifiers) != len(self.arguments):
			raise CountMismatchError(len(self.specifiers), len(self.arguments), self.arguments[-1].span if self.arguments else None)
		for position, (specifier, argument) in enumerate(zip(self.specifiers, self.arguments), start=1):
			if not specifier.value_type.compatible_with(argument.value_type):
				raise TypeMismatchError(position, specifier, argument.value_type, argument.span)

	# Utility parsing helpers -------------------------------------------------

	def _match(self, kind: TokenKind) -> Token:
		token = self._current()
		if token.kind != kind:
			raise GrammarError(f"expected {kind.value}, found {token.kind.value}", token.span, hint=_hint_for_expect(kind))
		self._advance_token()
		return token

	def _check(self, kind: TokenKind) -> bool:
		return self._current().kind == kind

	def _current(self) -> Token:
		return self.tokens[min(self.index, len(self.tokens) - 1)]

	def _advance_token(self) -> Token:
		token = self._current()
		if token.kind != TokenKind.EOF:
			self.index += 1
		return token


def _hint_for_expect(expected: TokenKind) -> Optional[str]:
	if expected == TokenKind.PRINTF:
		return "Each line must be a single printf call."
	if expected == TokenKind.LPAREN:
		return "Missing '('. Calls look like: printf(\"%d\", x);"
	if expected == TokenKind.RPAREN:
		return "Missing ')'. Check that every '(' in the arguments is closed."
	if expected == TokenKind.SEMICOLON:
		return "Statements must end with ';'."
	if expected == TokenKind.STRING_LITERAL:
		return "The first argument of printf must be a string literal."
	if expected == TokenKind.EOF:
		return "Only one statement is allowed per line."
	return None


# ---------------------------------------------------------------------------
# Validation pipeline


@dataclass(frozen=True)
class ValidatorOptions:
	strict_numbers: bool = False
	strict_strings: bool = False
	propagate_unknown: bool = False


@dataclass(frozen=True)
class ValidationArtifacts:
	line: str
	line_number: int
	tokens: List[Token]
	outcome: ParseOutcome
	duration_ms: float

	@property
	def valid(self) -> bool:
		return self.outcome.valid


class PrintfValidatorEngine:
	def __init__(self, options: Optional[ValidatorOptions] = None) -> None:
		self.options = options or ValidatorOptions()

	def validate(self, line: str, line_number: int = 1) -> ValidationArtifacts:
		start = time.perf_counter()
		try:
			tokens = tokenize(
				line,
				line_number,
				strict_numbers=self.options.strict_numbers,
				strict_strings=self.options.strict_strings,
			)
		except LexError as exc:
			tokens = []
			outcome = ParseOutcome.invalid(exc.diagnostic)
		else:
			outcome = Parser(tokens, propagate_unknown=self.options.propagate_unknown).parse()
		duration_ms = (time.perf_counter() - start) * 1000
		if outcome.valid:
			logger.debug("line %d valid (%d specifier(s))", line_number, len(outcome.specifiers))
		else:
			logger.debug("line %d invalid: %s", line_number, outcome.reason)
		return ValidationArtifacts(line=line, line_number=line_number, tokens=tokens, outcome=outcome, duration_ms=duration_ms)

	def validate_lines(self, lines: Iterable[str]) -> List[ValidationArtifacts]:
		return [self.validate(line.rstrip("\r\n"), number) for number, line in enumerate(lines, start=1)]


def validate_line(line: str, options: Optional[ValidatorOptions] = None) -> ParseOutcome:
	return PrintfValidatorEngine(options).validate(line).outcome


# ---------------------------------------------------------------------------
# Line driver


def split_lines(source: str) -> List[str]:
	"""Split on \\n, \\r and \\r\\n only; form feeds and other separators stay inside the line."""
	return [line.rstrip("\n") for line in io.StringIO(source, newline=None)]


def validate_source(source: str, options: Optional[ValidatorOptions] = None) -> List[ValidationArtifacts]:
	return PrintfValidatorEngine(options).validate_lines(split_lines(source))


def validate_file(path: Path, options: Optional[ValidatorOptions] = None) -> List[ValidationArtifacts]:
	source = path.read_text(encoding="utf-8")
	logger.info("Validating %s", path)
	return validate_source(source, options)


def format_result(artifacts: ValidationArtifacts) -> str:
	if artifacts.valid:
		return f"Line {artifacts.line_number}: valid command."
	return f"Line {artifacts.line_number}: invalid command. [{artifacts.outcome.reason}]"


def format_tokens(tokens: Sequence[Token]) -> str:
	return " ".join(f"{t.kind.value}({t.text})" if t.text else t.kind.value for t in tokens)


def build_arg_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="printf-validator", description="Check printf calls line by line.")
	parser.add_argument("file", nargs="?", help="source file with one printf call per line (prompted for when omitted)")
	parser.add_argument("--strict-numbers", action="store_true", help="reject numbers with more than one '.'")
	parser.add_argument("--strict-strings", action="store_true", help="reject unterminated string literals")
	parser.add_argument("--propagate-unknown", action="store_true", help="treat arithmetic on identifiers as Unknown")
	parser.add_argument("--tokens", action="store_true", help="print the token stream of each line")
	parser.add_argument("--log-level", default="WARNING", type=str.upper, choices=LOG_LEVELS, help="logging level (default: WARNING)")
	return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
	args = build_arg_parser().parse_args(argv)
	logging.basicConfig(level=args.log_level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT, stream=sys.stderr)
	options = ValidatorOptions(
		strict_numbers=args.strict_numbers,
		strict_strings=args.strict_strings,
		propagate_unknown=args.propagate_unknown,
	)
	filename = args.file or input("File name: ").strip()
	path = Path(filename)
	start = time.perf_counter()
	try:
		results = validate_file(path, options)
	except FileNotFoundError:
		print(f"File not found: {filename}", file=sys.stderr)
		return 2
	except OSError as exc:
		logger.error("Could not read %s: %s", filename, exc)
		print(f"Could not read {filename}: {exc}", file=sys.stderr)
		return 2
	for artifacts in results:
		print(format_result(artifacts))
		if args.tokens and artifacts.tokens:
			print(f"    {format_tokens(artifacts.tokens)}")
	invalid = sum(1 for a in results if not a.valid)
	duration_ms = (time.perf_counter() - start) * 1000
	print(f"Lines: {len(results)} | Valid: {len(results) - invalid} | Invalid: {invalid} | Time: {duration_ms:.2f} ms")
	return 1 if invalid else 0


if __name__ == "__main__":
	sys.exit(main())
