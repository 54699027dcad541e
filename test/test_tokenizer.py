"""Tests for prompt tokenization."""

import pytest

from skillset.tokenizer import tokenize


def aliases(text, **kwargs):
    return [t.alias for t in tokenize(text, **kwargs)]


def test_finds_aliases_with_boundaries() -> None:
    assert aliases("please $frontend-design and $ship!") == ["frontend-design", "ship"]


def test_ignores_code_fences_and_inline_code() -> None:
    prompt = "````\n$frontend-design\n```` and `$ship` then $real"
    assert aliases(prompt) == ["real"]


def test_tilde_fence_and_unterminated_fence() -> None:
    assert aliases("~~~\n$hidden\n~~~\n$shown") == ["shown"]
    assert aliases("$before\n```python\n$never\n$closed") == ["before"]


def test_shorter_closing_fence_does_not_close() -> None:
    prompt = "````\n```\n$inside\n````\n$outside"
    assert aliases(prompt) == ["outside"]


def test_double_backtick_inline_code() -> None:
    assert aliases("run ``echo `$x` $y`` then $z") == ["z"]


def test_unclosed_backtick_hides_rest_of_line() -> None:
    assert tokenize("see ` $foo and more") == []
    assert aliases("$before ` $hidden\n$next line") == ["before", "next"]
    assert aliases("``a` $ship") == []


def test_namespace_and_normalisation() -> None:
    tokens = tokenize("use $Project:FrontEnd_Design for this")
    assert len(tokens) == 1
    token = tokens[0]
    assert token.namespace == "project"
    assert token.alias == "front-end-design"
    assert token.raw == "$Project:FrontEnd_Design"


def test_multiple_namespaced_tokens() -> None:
    tokens = tokenize("$user:auth $project:api $plugin:mcp")
    assert [t.namespace for t in tokens] == ["user", "project", "plugin"]
    assert [t.alias for t in tokens] == ["auth", "api", "mcp"]


def test_kind_prefixes() -> None:
    tokens = tokenize("$set:frontend $Skill:user:auth $skillful:x $ship")
    assert [(t.kind, t.namespace, t.alias) for t in tokens] == [
        ("set", None, "frontend"),
        ("skill", "user", "auth"),
        (None, "skillful", "x"),
        (None, None, "ship"),
    ]
    assert tokens[1].raw == "$Skill:user:auth"


def test_embedded_sigil_is_not_a_token() -> None:
    assert tokenize("check$skill and$other") == []


def test_start_and_end_of_text() -> None:
    assert aliases("$start some text $end") == ["start", "end"]


def test_non_kebab_aliases_are_normalised() -> None:
    prompt = "$my_skill $AnotherSkill $double__underscore $bad--token"
    assert aliases(prompt) == ["my-skill", "another-skill", "double-underscore", "bad-token"]


def test_trailing_separators_are_trimmed() -> None:
    tokens = tokenize("try $ship- and $deploy/ now")
    assert [t.raw for t in tokens] == ["$ship", "$deploy"]


def test_sentence_punctuation_ends_alias() -> None:
    assert aliases("Use $ship, then ($lint). Or \"$fmt\"?") == ["ship", "lint", "fmt"]


def test_prices_are_not_tokens() -> None:
    assert tokenize("it costs $5 or $ 10") == []


def test_span_points_at_raw_text() -> None:
    text = "Use $ship to release"
    (token,) = tokenize(text)
    assert token.span == (4, 9)
    assert text[token.span[0] : token.span[1]] == token.raw


def test_span_is_absolute_across_lines() -> None:
    text = "first line\nthen $ship"
    (token,) = tokenize(text)
    assert text[token.span[0] : token.span[1]] == "$ship"


def test_alternative_sigil() -> None:
    tokens = tokenize("please w/frontend-design and $ship", sigil="w/")
    assert [t.alias for t in tokens] == ["frontend-design"]
    assert tokens[0].raw == "w/frontend-design"


def test_empty_sigil_rejected() -> None:
    with pytest.raises(ValueError):
        tokenize("$ship", sigil="")


def test_plain_prompt_has_no_tokens() -> None:
    assert tokenize("just a normal prompt without skills") == []
