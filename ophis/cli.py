"""
Ophis command line tool.

Dumps the token stream or the AST of a source file, or parses lines
typed at an interactive prompt:

    ophis tokens script.oph
    ophis parse script.oph --show-offsets
    ophis repl
"""

from enum import Enum
from typing import Iterable, List, Optional

import click
from rich.console import Console
from rich.text import Text
from rich.tree import Tree

from . import __version__
from .lexer import Lexer, Token, TokenType
from .parser import parse_source, ASTNode, ASTVisitor, Program


def _default_filename(stream) -> str:
    name = getattr(stream, "name", None)
    if not name or name == "-":
        return "<stdin>"
    return name


def _print_diagnostics(diagnostics: Iterable) -> None:
    console = Console(stderr=True, soft_wrap=True)
    for diagnostic in diagnostics:
        style = "yellow" if diagnostic.diagnostic.severity == "warning" else "red"
        console.print(Text(str(diagnostic).rstrip("\n"), style=style))


def _logical_lines(tokens: List[Token]) -> List[List[Token]]:
    """Group tokens by logical line; each group ends with its NEWLINE."""
    lines: List[List[Token]] = []
    current: List[Token] = []
    for token in tokens:
        current.append(token)
        if token.type == TokenType.NEWLINE:
            lines.append(current)
            current = []
    if current:
        lines.append(current)
    return lines


class TreeRenderer(ASTVisitor):
    """Builds a rich ``Tree`` mirroring an AST."""

    def __init__(self, show_offsets: bool = False):
        self.show_offsets = show_offsets

    def render(self, node: ASTNode) -> Tree:
        return self.visit(node)

    def visit_Program(self, node: Program) -> Tree:
        filename = node.span.start.filename if node.span else "<unknown>"
        tree = Tree(Text(f"Program {filename}", style="bold"))
        self._add_children(tree, node)
        return tree

    def generic_visit(self, node: ASTNode) -> Tree:
        tree = Tree(self._label(node))
        self._add_children(tree, node)
        return tree

    def _add_children(self, tree: Tree, node: ASTNode):
        for child in node.children():
            tree.children.append(self.visit(child))

    def _label(self, node: ASTNode) -> Text:
        label = Text(node.__class__.__name__, style="cyan")
        for name in node._fields:
            value = getattr(node, name)
            if value is None or isinstance(value, (ASTNode, list, tuple)):
                continue
            shown = value.name if isinstance(value, Enum) else repr(value)
            label.append(f" {name}=", style="dim")
            label.append(shown)
        if self.show_offsets and node.span is not None:
            start = node.span.start
            label.append(f"  @{start.line}:{start.column} (offset {start.offset})", style="dim")
        return label


@click.group()
@click.version_option(__version__, prog_name="ophis")
def main() -> None:
    """Ophis lexer and parser tools."""


@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--filename", default=None, help="Name used in diagnostics (defaults to the file path).")
@click.option("--show-offsets", is_flag=True, help="Show the character offset of every token.")
def tokens(source, filename: Optional[str], show_offsets: bool) -> None:
    """Print the token stream of SOURCE, one logical line per row."""
    filename = filename or _default_filename(source)
    lexer = Lexer(source.read(), filename)
    token_list = lexer.tokenize()

    console = Console(soft_wrap=True)
    for line in _logical_lines(token_list):
        row = Text(f"{line[0].location.line:>4} ", style="dim")
        for token in line:
            row.append(str(token))
            if show_offsets:
                row.append(f"@{token.offset}", style="dim")
            row.append(" ")
        console.print(row)

    _print_diagnostics(lexer.get_diagnostics())
    if lexer.has_errors():
        raise SystemExit(1)


@main.command()
@click.argument("source", type=click.File("r", encoding="utf-8"))
@click.option("--filename", default=None, help="Name used in diagnostics (defaults to the file path).")
@click.option("--show-offsets", is_flag=True, help="Show the source position of every node.")
def parse(source, filename: Optional[str], show_offsets: bool) -> None:
    """Print the AST of SOURCE as a tree."""
    filename = filename or _default_filename(source)
    program, errors = parse_source(source.read(), filename)

    Console(soft_wrap=True).print(TreeRenderer(show_offsets).render(program))

    _print_diagnostics(errors)
    if errors:
        raise SystemExit(1)


@main.command()
@click.option("--show-offsets", is_flag=True, help="Show the source position of every node.")
def repl(show_offsets: bool) -> None:
    """Parse lines typed at the prompt, each as its own source unit."""
    stdin = click.get_text_stream("stdin")
    console = Console(soft_wrap=True)
    renderer = TreeRenderer(show_offsets)
    line_number = 0

    while True:
        click.echo(">>> ", nl=False)
        line = stdin.readline()
        if not line:
            click.echo()
            return
        if not line.strip():
            continue

        line_number += 1
        program, errors = parse_source(line, f"<stdin-{line_number}>")
        if errors:
            _print_diagnostics(errors)
        else:
            console.print(renderer.render(program))


if __name__ == "__main__":
    main()
