from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from printf_validator import Token, TokenKind

EPS = "ε"
EOF = "$"


@dataclass(frozen=True)
class Production:
	lhs: str
	rhs: Tuple[str, ...]

	@property
	def is_epsilon(self) -> bool:
		return len(self.rhs) == 0 or self.rhs == (EPS,)

	def __str__(self) -> str:
		if self.is_epsilon:
			return f"{self.lhs} -> {EPS}"
		return f"{self.lhs} -> " + " ".join(self.rhs)


@dataclass(frozen=True)
class Grammar:
	start: str
	nonterminals: Set[str]
	productions: Tuple[Production, ...]

	@property
	def terminals(self) -> Set[str]:
		return {s for p in self.productions for s in p.rhs if s != EPS and s not in self.nonterminals}


def printf_grammar() -> Grammar:
	"""
	The printf statement grammar with its repetitions unrolled into right-recursive tails:

	  printf_expr -> printf ( printf_body ) ;
	  printf_body -> str body_tail
	  body_tail   -> , arg_list | ε
	  arg_list    -> expr arg_tail
	  arg_tail    -> , expr arg_tail | ε
	  expr        -> term expr_tail
	  expr_tail   -> + term expr_tail | - term expr_tail | ε
	  term        -> factor term_tail
	  term_tail   -> * factor term_tail | / factor term_tail | ε
	  factor      -> id call_suffix | num | ( expr )
	  call_suffix -> ( call_args ) | ε
	  call_args   -> arg_list | ε
	"""
	prods = [
		Production("printf_expr", ("printf", "(", "printf_body", ")", ";")),
		Production("printf_body", ("str", "body_tail")),
		Production("body_tail", (",", "arg_list")),
		Production("body_tail", (EPS,)),
		Production("arg_list", ("expr", "arg_tail")),
		Production("arg_tail", (",", "expr", "arg_tail")),
		Production("arg_tail", (EPS,)),
		Production("expr", ("term", "expr_tail")),
		Production("expr_tail", ("+", "term", "expr_tail")),
		Production("expr_tail", ("-", "term", "expr_tail")),
		Production("expr_tail", (EPS,)),
		Production("term", ("factor", "term_tail")),
		Production("term_tail", ("*", "factor", "term_tail")),
		Production("term_tail", ("/", "factor", "term_tail")),
		Production("term_tail", (EPS,)),
		Production("factor", ("id", "call_suffix")),
		Production("factor", ("num",)),
		Production("factor", ("(", "expr", ")")),
		Production("call_suffix", ("(", "call_args", ")")),
		Production("call_suffix", (EPS,)),
		Production("call_args", ("arg_list",)),
		Production("call_args", (EPS,)),
	]
	return Grammar(start="printf_expr", nonterminals={p.lhs for p in prods}, productions=tuple(prods))


TERMINALS: Dict[TokenKind, str] = {
	TokenKind.PRINTF: "printf",
	TokenKind.LPAREN: "(",
	TokenKind.RPAREN: ")",
	TokenKind.SEMICOLON: ";",
	TokenKind.STRING_LITERAL: "str",
	TokenKind.COMMA: ",",
	TokenKind.IDENTIFIER: "id",
	TokenKind.NUMBER: "num",
	TokenKind.FORMAT_SPECIFIER: "fmt",
	TokenKind.FUNCTION: "fn",
}


def terminals_for_tokens(tokens: Sequence[Token]) -> List[str]:
	"""Map lexer tokens to grammar terminals; operators map to their own text and EndOfInput is dropped."""
	out: List[str] = []
	for token in tokens:
		if token.kind == TokenKind.EOF:
			continue
		out.append(token.text if token.kind == TokenKind.OPERATOR else TERMINALS[token.kind])
	return out


def _first_of_sequence(seq: Sequence[str], *, first: Dict[str, Set[str]], nonterminals: Set[str]) -> Set[str]:
	"""FIRST of a symbol string; contains EPS only when every symbol can vanish."""
	out: Set[str] = set()
	for sym in seq:
		if sym == EPS:
			continue
		if sym not in nonterminals:
			out.add(sym)
			return out
		sym_first = first.get(sym, set())
		out |= sym_first - {EPS}
		if EPS not in sym_first:
			return out
	out.add(EPS)
	return out


def compute_first_sets(grammar: Grammar) -> Dict[str, Set[str]]:
	first: Dict[str, Set[str]] = {nt: set() for nt in grammar.nonterminals}
	changed = True
	while changed:
		changed = False
		for p in grammar.productions:
			size = len(first[p.lhs])
			if p.is_epsilon:
				first[p.lhs].add(EPS)
			else:
				first[p.lhs] |= _first_of_sequence(p.rhs, first=first, nonterminals=grammar.nonterminals)
			changed = changed or len(first[p.lhs]) != size
	return first


def compute_follow_sets(grammar: Grammar, first: Dict[str, Set[str]]) -> Dict[str, Set[str]]:
	follow: Dict[str, Set[str]] = {nt: set() for nt in grammar.nonterminals}
	follow[grammar.start].add(EOF)
	changed = True
	while changed:
		changed = False
		for p in grammar.productions:
			for i, sym in enumerate(p.rhs):
				if sym not in grammar.nonterminals:
					continue
				size = len(follow[sym])
				rest = _first_of_sequence(p.rhs[i + 1 :], first=first, nonterminals=grammar.nonterminals)
				follow[sym] |= rest - {EPS}
				if EPS in rest:
					follow[sym] |= follow[p.lhs]
				changed = changed or len(follow[sym]) != size
	return follow


Table = Dict[str, Dict[str, Production]]


def build_ll1_table(grammar: Grammar, first: Dict[str, Set[str]], follow: Dict[str, Set[str]]) -> Tuple[Table, List[str]]:
	"""
	Returns (table, conflicts) where table[nonterminal][terminal or $] is the production to expand.
	An empty conflict list means the grammar is LL(1).
	"""
	table: Table = {nt: {} for nt in grammar.nonterminals}
	conflicts: List[str] = []

	def place(lhs: str, lookahead: str, production: Production) -> None:
		existing = table[lhs].get(lookahead)
		if existing is not None and existing != production:
			conflicts.append(f"Conflict at M[{lhs}, {lookahead}]: {existing} vs {production}")
		else:
			table[lhs][lookahead] = production

	for p in grammar.productions:
		first_rhs = _first_of_sequence(p.rhs, first=first, nonterminals=grammar.nonterminals)
		for terminal in sorted(first_rhs - {EPS}):
			place(p.lhs, terminal, p)
		if EPS in first_rhs:
			for terminal in sorted(follow[p.lhs]):
				place(p.lhs, terminal, p)

	return table, conflicts


@dataclass(frozen=True)
class ParseStep:
	stack: List[str]
	remaining_input: List[str]
	action: str


@dataclass(frozen=True)
class ParseResult:
	accepted: bool
	error: Optional[str]
	steps: List[ParseStep]


def parse_tokens_ll1(grammar: Grammar, table: Table, tokens: Sequence[str], *, trace: bool = True) -> ParseResult:
	"""Stack-based table-driven recogniser over grammar terminals; EOF ($) is appended to the input."""
	inp = [t for t in tokens if t] + [EOF]
	stack: List[str] = [EOF, grammar.start]
	steps: List[ParseStep] = []
	pos = 0

	def record(action: str) -> None:
		if trace:
			steps.append(ParseStep(stack=list(stack), remaining_input=inp[pos:], action=action))

	record("init")
	while stack:
		top = stack.pop()
		lookahead = inp[pos]
		if top not in grammar.nonterminals:
			if top != lookahead:
				return ParseResult(accepted=False, error=f"Mismatch: expected '{top}' but found '{lookahead}'", steps=steps)
			pos += 1
			record(f"match {lookahead}")
			if top == EOF:
				return ParseResult(accepted=True, error=None, steps=steps)
			continue
		production = table.get(top, {}).get(lookahead)
		if production is None:
			return ParseResult(accepted=False, error=f"No rule for M[{top}, {lookahead}]", steps=steps)
		if not production.is_epsilon:
			stack.extend(reversed(production.rhs))
		record(str(production))

	return ParseResult(accepted=False, error="Unexpected end of parse (stack exhausted).", steps=steps)


@dataclass(frozen=True)
class GrammarAnalysis:
	grammar: Grammar
	first: Dict[str, Set[str]]
	follow: Dict[str, Set[str]]
	table: Table
	conflicts: List[str]

	@property
	def is_ll1(self) -> bool:
		return not self.conflicts

	def recognise(self, tokens: Sequence[Token], *, trace: bool = True) -> ParseResult:
		return parse_tokens_ll1(self.grammar, self.table, terminals_for_tokens(tokens), trace=trace)


def analyse_grammar(grammar: Optional[Grammar] = None) -> GrammarAnalysis:
	grammar = grammar or printf_grammar()
	first = compute_first_sets(grammar)
	follow = compute_follow_sets(grammar, first)
	table, conflicts = build_ll1_table(grammar, first, follow)
	return GrammarAnalysis(grammar=grammar, first=first, follow=follow, table=table, conflicts=conflicts)
