## Copyright © 2025, Alex J. Champandard.  Licensed under AGPLv3; see LICENSE! ⚘

import lark

from .errors import HotParseError, HotIncompleteParse


GRAMMAR = r"""start: using_directive* namespace_member*

using_directive: "using" qualified_name ";"
?namespace_member: namespace_declaration | class_declaration
namespace_declaration: "namespace" qualified_name "{" using_directive* namespace_member* "}"
class_declaration: modifier* "class" NAME "{" method_declaration* "}"
method_declaration: modifier* type_ref NAME "(" parameter_list? ")" block
modifier: STATIC | ASYNC | PUBLIC | PRIVATE | INTERNAL
parameter_list: parameter ("," parameter)*
parameter: type_ref NAME
type_ref: NAME type_arguments? ARRAY?
type_arguments: LT type_ref ("," type_ref)* GT
qualified_name: NAME ("." NAME)*

// STATEMENTS
?statement: block
          | if_statement
          | while_statement
          | return_statement
          | variable_declaration
          | expression_statement
block: "{" statement* "}"
if_statement: "if" "(" expression ")" block ("else" (block | if_statement))?
while_statement: "while" "(" expression ")" block
return_statement: "return" expression? ";"
variable_declaration: (type_ref | VAR) NAME "=" expression ";"
expression_statement: (invocation | await_expression) ";"

// EXPRESSIONS
?expression: equality
?equality: relational
         | equality (EQ | NE) relational -> binary
?relational: additive
           | relational (LT | GT | LE | GE) additive -> binary
?additive: multiplicative
         | additive (PLUS | MINUS) multiplicative -> binary
?multiplicative: unary
               | multiplicative (STAR | SLASH) unary -> binary
?unary: await_expression
      | primary
await_expression: "await" unary
?primary: literal
        | invocation
        | NAME -> identifier
        | "(" expression ")"
invocation: qualified_name "(" argument_list? ")"
argument_list: expression ("," expression)*
literal: INTEGER | STRING | TRUE | FALSE

// TOKENS
STATIC: "static"
ASYNC: "async"
PUBLIC: "public"
PRIVATE: "private"
INTERNAL: "internal"
VAR: "var"
TRUE: "true"
FALSE: "false"
ARRAY: "[]"
EQ: "=="
NE: "!="
LE: "<="
GE: ">="
LT: "<"
GT: ">"
PLUS: "+"
MINUS: "-"
STAR: "*"
SLASH: "/"
NAME: /[A-Za-z_][A-Za-z0-9_]*/
INTEGER: /\d+/
STRING: /"(?:[^"\\\n]|\\.)*"/

// COMMENTS & WHITESPACE
COMMENT: /\/\/[^\n]*/
BLOCK_COMMENT: /\/\*(.|\n)*?\*\//
%import common.WS
%ignore WS
%ignore COMMENT
%ignore BLOCK_COMMENT
"""


_PARSER: lark.Lark | None = None

def _get_parser() -> lark.Lark:
    global _PARSER
    if _PARSER is None:
        _PARSER = lark.Lark(GRAMMAR, start='start', parser="lalr", lexer="contextual", propagate_positions=True)
    return _PARSER


def _describe(exc: lark.exceptions.UnexpectedInput) -> tuple[str, str]:
    if isinstance(exc, lark.exceptions.UnexpectedCharacters):
        return f"Unexpected character `{exc.char}`.", exc.char
    token = getattr(exc, 'token', None)
    token_val = getattr(token, 'value', '') if token is not None else ''
    expected = sorted(getattr(exc, 'expected', None) or getattr(exc, 'accepts', None) or [])
    hint = f" Expected one of: {', '.join(expected)}." if expected else ""
    if token_val == '':
        return "Unexpected end of input." + hint, ''
    return f"Unexpected token `{token_val}`." + hint, token_val


def parse(source: str, filename: str | None = None) -> lark.Tree:
    try:
        return _get_parser().parse(source)
    except lark.exceptions.UnexpectedInput as exc:
        message, token_val = _describe(exc)
        error_class = HotIncompleteParse if token_val == '' else HotParseError
        line, column = getattr(exc, 'line', None), getattr(exc, 'column', None)
        if line is not None and line < 0: line, column = None, None
        raise error_class(message, filename=filename, line=line, column=column, token=token_val) from None


def format_source_context(source: str, line: int | None, column: int | None, token_value: str = '') -> str:
    """Highlight the offending region of `source`, with two lines of context on either side."""
    if not line: return ''
    lines = source.splitlines()
    start_line, end_line = max(0, line - 3), min(len(lines), line + 2)
    result = []

    for i in range(start_line, end_line):
        line_content = lines[i]
        line_color = '\033[90m'
        if i+1 == line:
            line_color = '\033[97m'
            width = max(len(token_value), 1)
            if column and 0 < column <= len(line_content):
                line_content = (
                    line_content[:column-1] +
                    f"\033[48;5;30m\033[1;97m{line_content[column-1:column+width-1]}\033[0m" +
                    line_content[column+width-1:]
                )
        result.append(f"{line_color}{i+1:>5} |\033[0m {line_content}")
    return '\n'.join(result) + '\n'
