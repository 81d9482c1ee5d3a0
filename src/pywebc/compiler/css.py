"""Scoped style rewriting."""

import logging
import re
from typing import Callable, Iterable, List, Optional, Sequence

import tinycss2
from tinycss2 import ast as css

logger = logging.getLogger(__name__)

KEYFRAMES = re.compile(r"^(-[a-z]+-)?keyframes$")

# At-rules whose blocks hold style rules rather than declarations
GROUPING_AT_RULES = {
    "media",
    "supports",
    "document",
    "layer",
    "container",
    "scope",
    "starting-style",
}

COMBINATORS = {">", "+", "~", ","}


def _strip(tokens: Sequence[css.Node]) -> List[css.Node]:
    tokens = [token for token in tokens if token.type != "comment"]
    start, end = 0, len(tokens)
    while start < end and tokens[start].type == "whitespace":
        start += 1
    while end > start and tokens[end - 1].type == "whitespace":
        end -= 1
    return tokens[start:end]


def _is_literal(token: Optional[css.Node], value: str) -> bool:
    return token is not None and token.type == "literal" and token.value == value


def _serialize_token(token: css.Node, minify) -> str:
    if token.type == "function":
        return f"{token.name}({minify(token.arguments)})"
    if token.type == "() block":
        return f"({minify(token.content)})"
    if token.type == "[] block":
        return f"[{minify(token.content)}]"
    if token.type == "{} block":
        return f"{{{minify(token.content)}}}"
    return token.serialize()


def serialize_value(tokens: Iterable[css.Node]) -> str:
    """Serialize component values with runs of whitespace collapsed."""
    out: List[str] = []
    pending_space = False
    for token in _strip(list(tokens)):
        if token.type == "whitespace":
            pending_space = True
            continue
        if pending_space and out:
            out.append(" ")
        pending_space = False
        out.append(_serialize_token(token, serialize_value))
    return "".join(out)


def serialize_selector(tokens: Iterable[css.Node]) -> str:
    """Serialize a selector without whitespace around combinators."""
    out: List[str] = []
    pending_space = False
    previous: Optional[css.Node] = None
    for token in _strip(list(tokens)):
        if token.type == "whitespace":
            pending_space = True
            continue
        is_combinator = token.type == "literal" and token.value in COMBINATORS
        after_combinator = (
            previous is not None
            and previous.type == "literal"
            and previous.value in COMBINATORS
        )
        if pending_space and out and not is_combinator and not after_combinator:
            out.append(" ")
        pending_space = False
        out.append(_serialize_token(token, serialize_selector))
        previous = token
    return "".join(out)


def split_selector_list(tokens: Sequence[css.Node]) -> List[List[css.Node]]:
    selectors: List[List[css.Node]] = [[]]
    for token in tokens:
        if _is_literal(token, ","):
            selectors.append([])
        else:
            selectors[-1].append(token)
    return [_strip(selector) for selector in selectors]


SelectorRewriter = Callable[[Sequence[css.Node]], str]


def _parse_rules(content: Sequence[css.Node]) -> List[css.Node]:
    return tinycss2.parse_rule_list(content, skip_comments=True, skip_whitespace=True)


def serialize_rules(
    rules: Sequence[css.Node],
    rewrite: Optional[SelectorRewriter] = None,
    file_path: Optional[str] = None,
) -> str:
    out = []
    for rule in rules:
        if rule.type == "qualified-rule":
            prelude = rewrite(rule.prelude) if rewrite else serialize_selector(rule.prelude)
            declarations = serialize_declarations(rule.content, file_path)
            out.append(f"{prelude}{{{declarations}}}")
        elif rule.type == "at-rule":
            out.append(serialize_at_rule(rule, rewrite, file_path))
        elif rule.type == "error":
            logger.warning("Skipping invalid CSS in %s: %s", file_path or "<style>", rule.message)
    return "".join(out)


def serialize_at_rule(
    rule: css.AtRule,
    rewrite: Optional[SelectorRewriter] = None,
    file_path: Optional[str] = None,
) -> str:
    name = rule.lower_at_keyword
    prelude = serialize_value(rule.prelude)
    head = f"@{rule.at_keyword}" + (f" {prelude}" if prelude else "")
    if rule.content is None:
        return f"{head};"

    if KEYFRAMES.match(name):
        inner = serialize_rules(_parse_rules(rule.content), None, file_path)
    elif name in GROUPING_AT_RULES:
        inner = serialize_rules(_parse_rules(rule.content), rewrite, file_path)
    else:
        inner = serialize_declarations(rule.content, file_path)
    return f"{head}{{{inner}}}"


def serialize_declarations(content: Sequence[css.Node], file_path: Optional[str] = None) -> str:
    out = []
    items = tinycss2.parse_declaration_list(content, skip_comments=True, skip_whitespace=True)
    for item in items:
        if item.type == "declaration":
            important = "!important" if item.important else ""
            out.append(f"{item.name}:{serialize_value(item.value)}{important}")
        elif item.type == "at-rule":
            out.append(serialize_at_rule(item, None, file_path))
        elif item.type == "error":
            logger.warning(
                "Skipping invalid CSS declaration in %s: %s", file_path or "<style>", item.message
            )
    return ";".join(out)


def minify_css(content: str, file_path: Optional[str] = None) -> str:
    """Reserialize a stylesheet compactly without touching selectors."""
    rules = tinycss2.parse_stylesheet(content, skip_comments=True, skip_whitespace=True)
    return serialize_rules(rules, None, file_path)


def _continue_selector(rest: Sequence[css.Node]) -> str:
    text = serialize_selector(rest)
    if text and rest[0].type == "whitespace" and text[0] not in COMBINATORS:
        return f" {text}"
    return text


class CssPrefixer:
    """Prefixes every selector in a stylesheet with a scope class.

    `:host` resolves to the scope class itself and `:host(<selector>)` to
    the scope class compounded with the selector. Keyframe selectors and
    selectors already carrying the prefix are left alone, so processing
    prefixed output again with the same prefix changes nothing.
    """

    def __init__(self, prefix: str) -> None:
        if not prefix:
            raise ValueError("No prefix was passed to the CSS prefixer!")
        self.prefix = prefix
        self.file_path: Optional[str] = None

    def set_file_path(self, file_path: Optional[str]) -> None:
        self.file_path = file_path

    def process(self, content: str) -> str:
        rules = tinycss2.parse_stylesheet(content, skip_comments=True, skip_whitespace=True)
        return serialize_rules(rules, self.prefix_selector_list, self.file_path)

    @staticmethod
    def process_without_transformation(content: str) -> str:
        return minify_css(content)

    def prefix_selector_list(self, prelude: Sequence[css.Node]) -> str:
        return ",".join(
            self.prefix_selector(selector) for selector in split_selector_list(prelude)
        )

    def prefix_selector(self, tokens: List[css.Node]) -> str:
        if not tokens:
            return ""
        first = tokens[0]
        second = tokens[1] if len(tokens) > 1 else None

        # Keyframe selectors outside of @keyframes
        if first.type == "percentage" or (
            len(tokens) == 1 and first.type == "ident" and first.lower_value in ("from", "to")
        ):
            return serialize_selector(tokens)

        if _is_literal(first, ":") and second is not None:
            if second.type == "ident" and second.lower_value == "host":
                return f".{self.prefix}{_continue_selector(tokens[2:])}"
            if second.type == "function" and second.lower_name == "host":
                inner = serialize_selector(second.arguments)
                return f".{self.prefix}{inner}{_continue_selector(tokens[2:])}"
            if (second.type == "ident" and second.lower_value == "host-context") or (
                second.type == "function" and second.lower_name == "host-context"
            ):
                return serialize_selector(tokens)

        if (
            _is_literal(first, ".")
            and second is not None
            and second.type == "ident"
            and second.value == self.prefix
        ):
            return serialize_selector(tokens)

        return f".{self.prefix} {serialize_selector(tokens)}"
