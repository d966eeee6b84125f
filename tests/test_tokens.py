"""Tests for the Lox tokenizer."""

from lox.tokens import TK_EOF, TK_IDENT, TK_NUMBER, TK_STRING, tokenize


def _types(source: str) -> list[str]:
    tokens, errors = tokenize(source)
    assert errors == [], [e.report() for e in errors]
    return [t.type for t in tokens]


def test_empty_source_is_just_eof():
    tokens, errors = tokenize("")
    assert errors == []
    assert len(tokens) == 1
    assert tokens[0].type == TK_EOF
    assert tokens[0].line == 1


def test_operators_prefer_two_characters():
    assert _types("! != = == < <= > >=") == [
        "!",
        "!=",
        "=",
        "==",
        "<",
        "<=",
        ">",
        ">=",
        TK_EOF,
    ]


def test_punctuation():
    assert _types("(){},.-+;/*") == [
        "(",
        ")",
        "{",
        "}",
        ",",
        ".",
        "-",
        "+",
        ";",
        "/",
        "*",
        TK_EOF,
    ]


def test_keywords_and_identifiers():
    tokens, _ = tokenize("class classy _under fun9 nil")
    assert [(t.type, t.lexeme) for t in tokens[:-1]] == [
        ("class", "class"),
        (TK_IDENT, "classy"),
        (TK_IDENT, "_under"),
        (TK_IDENT, "fun9"),
        ("nil", "nil"),
    ]


def test_numbers_are_floats():
    tokens, _ = tokenize("12 3.25")
    assert tokens[0].type == TK_NUMBER
    assert tokens[0].literal == 12.0
    assert isinstance(tokens[0].literal, float)
    assert tokens[1].literal == 3.25


def test_number_with_trailing_dot_is_number_then_dot():
    assert _types("1.") == [TK_NUMBER, ".", TK_EOF]


def test_number_with_leading_dot_is_dot_then_number():
    assert _types(".5") == [".", TK_NUMBER, TK_EOF]


def test_method_call_on_number_literal():
    assert _types("1.foo") == [TK_NUMBER, ".", TK_IDENT, TK_EOF]


def test_string_literal_strips_quotes_and_keeps_escapes_raw():
    tokens, _ = tokenize('"a\\nb"')
    assert tokens[0].type == TK_STRING
    assert tokens[0].lexeme == '"a\\nb"'
    assert tokens[0].literal == "a\\nb"


def test_multiline_string_advances_line():
    tokens, _ = tokenize('"one\ntwo"\nx')
    assert tokens[0].literal == "one\ntwo"
    assert tokens[0].line == 1
    assert tokens[1].lexeme == "x"
    assert tokens[1].line == 3


def test_comments_and_whitespace_produce_no_tokens():
    assert _types("// nothing here\n\t \r\n") == [TK_EOF]


def test_slash_alone_is_division():
    assert _types("4 / 2") == [TK_NUMBER, "/", TK_NUMBER, TK_EOF]


def test_lines_and_columns():
    tokens, _ = tokenize("var a;\n  print a;")
    assert [(t.lexeme, t.line, t.col) for t in tokens[:-1]] == [
        ("var", 1, 1),
        ("a", 1, 5),
        (";", 1, 6),
        ("print", 2, 3),
        ("a", 2, 9),
        (";", 2, 10),
    ]


def test_unexpected_characters_are_collected():
    tokens, errors = tokenize("@\nvar #x;")
    assert [(e.msg, e.line) for e in errors] == [
        ("Unexpected character.", 1),
        ("Unexpected character.", 2),
    ]
    assert [t.type for t in tokens] == ["var", TK_IDENT, ";", TK_EOF]


def test_unterminated_string_scans_to_end():
    tokens, errors = tokenize('print "open')
    assert [e.msg for e in errors] == ["Unterminated string."]
    assert errors[0].category == "scan"
    assert [t.type for t in tokens] == ["print", TK_EOF]


def test_tokenize_is_restartable():
    first, _ = tokenize("a + b")
    second, _ = tokenize("a + b")
    assert [t.lexeme for t in first] == [t.lexeme for t in second]
