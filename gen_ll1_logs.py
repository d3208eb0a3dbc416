"""
Print FIRST/FOLLOW sets, the LL(1) table and table-driven parse traces for the printf grammar.

Usage:
  python -X utf8 gen_ll1_logs.py ['printf("%d", 1);' ...]
"""

from __future__ import annotations

import sys
from typing import List, Optional, Sequence

from printf_validator import LexError, tokenize
from webapp.ll1 import EOF, EPS, analyse_grammar

SAMPLE_LINES = [
	'printf("%d + %f", 1, 2.5 * x);',
	'printf("%s", name(1, 2));',
	'printf "hi");',
]


def fmt(text: str) -> str:
	return text.replace(EPS, "eps")


def main(argv: Optional[Sequence[str]] = None) -> None:
	lines: List[str] = list(argv if argv is not None else sys.argv[1:]) or SAMPLE_LINES
	analysis = analyse_grammar()
	g = analysis.grammar

	print("=== GRAMMAR ===")
	for p in g.productions:
		print(fmt(str(p)))

	print("\n=== FIRST ===")
	for nt, syms in sorted(analysis.first.items()):
		print(f"{nt}: {sorted(fmt(s) for s in syms)}")

	print("\n=== FOLLOW ===")
	for nt, syms in sorted(analysis.follow.items()):
		print(f"{nt}: {sorted(syms)}")

	print("\n=== LL(1) TABLE (non-empty cells) ===")
	for nt in sorted(g.nonterminals):
		row = analysis.table.get(nt, {})
		for t in sorted(row):
			print(f"M[{nt}, {t}] = {fmt(str(row[t]))}")

	print("\n=== Conflicts ===")
	print(analysis.conflicts or "none")

	for line in lines:
		print(f"\n=== Parse: {line} ===")
		try:
			tokens = tokenize(line)
		except LexError as exc:
			print("lexical error:", exc.message)
			continue
		r = analysis.recognise(tokens, trace=True)
		print("accepted:", r.accepted)
		print("error:", r.error)
		print("steps:", len(r.steps))
		for s in r.steps:
			print("STACK:", " ".join(s.stack), "| IN:", " ".join(s.remaining_input), "| ACT:", fmt(s.action))

	print("\n(EOF symbol is:", EOF, ")")


if __name__ == "__main__":
	main()
