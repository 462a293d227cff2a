"""Tests for inline tool call recognizers and the text extractor."""

import pytest

from services.toolcall_service.core.parsing.extractor import extract_tool_calls_from_text
from services.toolcall_service.core.parsing.recognizers import (
    balanced_block_after,
    find_bare_invocations,
    find_fenced_tool_calls,
    find_json_tool_tags,
    find_markdown_tool_markers,
    find_tool_result_echoes,
    find_wrapped_invocations,
    parse_tool_call_payload,
)
from shared.protocol.tool_models import ExtractionSource

WRENCH = "\N{WRENCH}"


class TestParseToolCallPayload:
    """Tests for the payload fallback chain."""

    def test_decoded_payload(self):
        """Test the tool/arguments keys."""
        payload = parse_tool_call_payload('{"tool": " read_file ", "arguments": {"path": "a.md"}}')
        assert payload.name == "read_file"
        assert payload.arguments == {"path": "a.md"}

    def test_name_and_args_aliases(self):
        """Test the name/args and input keys."""
        assert parse_tool_call_payload('{"name": "a", "args": {"x": 1}}').arguments == {"x": 1}
        assert parse_tool_call_payload('{"name": "a", "input": {"y": 2}}').arguments == {"y": 2}

    def test_null_arguments_fall_through(self):
        """Test that a null arguments member yields to args."""
        payload = parse_tool_call_payload('{"name": "a", "arguments": null, "args": {"x": 1}}')
        assert payload.arguments == {"x": 1}

    def test_string_arguments_decoded(self):
        """Test JSON-encoded argument strings."""
        payload = parse_tool_call_payload('{"name": "a", "arguments": "{\\"x\\": 1}"}')
        assert payload.arguments == {"x": 1}

    def test_undecodable_string_arguments(self):
        """Test that unreadable argument strings keep the raw text."""
        payload = parse_tool_call_payload('{"name": "a", "arguments": "not json"}')
        assert payload.arguments == {}
        assert payload.raw_arguments == "not json"

    def test_scalar_arguments_wrapped(self):
        """Test that scalar arguments become {input: value}."""
        assert parse_tool_call_payload('{"name": "a", "arguments": 5}').arguments == {"input": 5}
        assert parse_tool_call_payload('{"name": "a", "args": [1]}').arguments == {"input": [1]}

    def test_decoded_without_name(self):
        """Test that a decoded object without a name is no payload."""
        assert parse_tool_call_payload('{"arguments": {"x": 1}}') is None
        assert parse_tool_call_payload('{"tool": "   "}') is None

    def test_rescue_balanced_arguments(self):
        """Test the textual rescue when the whole payload is broken."""
        raw = '{"tool": "update_file", "arguments": {"content": "a } b", "n": {"k": 1}}, "extra": oops}'
        payload = parse_tool_call_payload(raw)
        assert payload.name == "update_file"
        assert payload.arguments == {"content": "a } b", "n": {"k": 1}}

    def test_rescue_name_only(self):
        """Test that an unreadable arguments block still yields the name."""
        payload = parse_tool_call_payload('{"name": "search", "args": {"q": broken}')
        assert payload.name == "search"
        assert payload.arguments == {}

    def test_no_name_anywhere(self):
        """Test that unrecoverable payloads give None."""
        assert parse_tool_call_payload("{not even close") is None

    def test_balanced_block_respects_strings(self):
        """Test depth counting ignores braces and escaped quotes in strings."""
        raw = '"input": {"a": "x\\"}{", "b": {}} trailing'
        assert balanced_block_after(raw, "input") == '{"a": "x\\"}{", "b": {}}'
        assert balanced_block_after(raw, "missing") is None
        assert balanced_block_after('"input": {"a": 1', "input") is None


class TestRecognizers:
    """Tests for each recognizer in isolation."""

    def test_fenced_block(self):
        """Test a fenced tool_call block with trailing commas."""
        text = 'Sure.\n```tool_call\n{"tool": "search_files", "arguments": {"keyword": "hi",},}\n```\nDone.'

        [candidate] = find_fenced_tool_calls(text)

        assert candidate.name == "search_files"
        assert candidate.arguments == {"keyword": "hi"}
        assert candidate.source == ExtractionSource.FENCED_BLOCK
        assert text[candidate.start : candidate.end].startswith("```tool_call")
        assert text[candidate.start : candidate.end].endswith("```")

    def test_fenced_block_keeps_commas_in_string_arguments(self):
        """Test that code with trailing commas inside argument strings is untouched."""
        text = '```tool_call\n{"tool":"write_file","arguments":{"content":"x = [1, 2,]"}}\n```'

        [candidate] = find_fenced_tool_calls(text)

        assert candidate.name == "write_file"
        assert candidate.arguments == {"content": "x = [1, 2,]"}

    def test_fenced_block_with_literal_newline(self):
        """Test that newlines inside string values are repaired."""
        text = '```tool_call\n{"tool": "update_file", "arguments": {"content": "line1\nline2"}}\n```'
        [candidate] = find_fenced_tool_calls(text)
        assert candidate.arguments == {"content": "line1\nline2"}

    def test_wrapped_invocation(self):
        """Test parameters become trimmed strings without coercion."""
        text = (
            '<tool_call><invoke name="read_file">'
            '<parameter name="path"> README.md </parameter>'
            '<parameter name="limit">10</parameter>'
            "</invoke></tool_call>"
        )

        [candidate] = find_wrapped_invocations(text)

        assert candidate.name == "read_file"
        assert candidate.arguments == {"path": "README.md", "limit": "10"}
        assert (candidate.start, candidate.end) == (0, len(text))

    def test_minimax_wrapper(self):
        """Test the namespaced wrapper tag."""
        text = '<minimax:tool_call>\n<invoke name="list_files">{"dir": "notes"}</invoke>\n</minimax:tool_call>'
        [candidate] = find_wrapped_invocations(text)
        assert candidate.arguments == {"dir": "notes"}

    def test_invocation_with_unreadable_body(self):
        """Test that an unreadable invoke body degrades to empty arguments."""
        [candidate] = find_bare_invocations('<invoke name="ping">just text</invoke>')
        assert candidate.arguments == {}
        assert candidate.raw_arguments == "just text"

    def test_json_tool_tag(self):
        """Test a wrapper tag with a JSON body."""
        text = '<tool_call>{"name": "search", "arguments": {"q": "x"}}</tool_call>'
        [candidate] = find_json_tool_tags(text)
        assert candidate.name == "search"
        assert candidate.arguments == {"q": "x"}
        assert candidate.source == ExtractionSource.JSON_TAG

    def test_json_tool_tag_skips_invoke_bodies(self):
        """Test that invoke-style wrappers are left to the invoke recognizer."""
        assert find_json_tool_tags('<tool_call><invoke name="a"></invoke></tool_call>') == []

    def test_tool_result_url_attribute(self):
        """Test that a url attribute becomes the only argument."""
        text = '<tool_result name="fetch" url="https://example.com">{"ignored": true}</tool_result>'
        [candidate] = find_tool_result_echoes(text)
        assert candidate.arguments == {"url": "https://example.com"}

    @pytest.mark.parametrize(
        ("tag", "expected"),
        [
            ('<tool_result name="t">{"q": "x"}</tool_result>', {"q": "x"}),
            ("<tool_result name='t'>42</tool_result>", {"input": 42}),
            ('<tool_result name="t" type="url">https://a.b</tool_result>', {"url": "https://a.b"}),
            ('<tool_result name="t" type="text">plain words</tool_result>', {"text": "plain words"}),
            ('<tool_result name="t"></tool_result>', {}),
        ],
    )
    def test_tool_result_bodies(self, tag, expected):
        """Test body decoding rules for tool_result echoes."""
        [candidate] = find_tool_result_echoes(tag)
        assert candidate.arguments == expected

    def test_tool_result_without_name(self):
        """Test that nameless tool_result tags are ignored."""
        assert find_tool_result_echoes('<tool_result type="url">x</tool_result>') == []
        assert find_tool_result_echoes('<tool_result filename="x.md">x</tool_result>') == []

    def test_markdown_marker_with_block(self):
        """Test the markdown marker and its JSON block."""
        text = f'{WRENCH} **Tool: search_files**...\n```json\n{{"success": true, "output": "3 hits"}}\n```'
        [candidate] = find_markdown_tool_markers(text)
        assert candidate.name == "search_files"
        assert candidate.arguments == {"success": True, "output": "3 hits"}
        assert candidate.end == len(text)

    def test_markdown_marker_without_block(self):
        """Test the Executing spelling without a block."""
        [candidate] = find_markdown_tool_markers(f"{WRENCH} **Executing: read_file**")
        assert candidate.name == "read_file"
        assert candidate.arguments == {}


class TestExtractToolCallsFromText:
    """Tests for the merged extraction pass."""

    def test_wrapped_invoke_scenario(self):
        """Test a wrapped invoke yields exactly one extraction."""
        text = 'Reading it now. <tool_call><invoke name="read_file"><parameter name="path">README.md</parameter></invoke></tool_call>'

        extractions = extract_tool_calls_from_text(text)

        assert len(extractions) == 1
        assert extractions[0].name == "read_file"
        assert extractions[0].arguments == {"path": "README.md"}
        assert extractions[0].source == ExtractionSource.XML_INVOKE
        assert extractions[0].start_index == text.index("<tool_call>")
        assert extractions[0].end_index == len(text)

    @pytest.mark.parametrize(
        "text",
        [
            '{"tool":"update_file"',
            '```tool_call\n{"tool":"update_file"',
            '<tool_call>{"tool":"update_file"',
            '<invoke name="read_file"><parameter name="path">REA',
            '<tool_result name="fetch">partial',
            "",
        ],
    )
    def test_partial_markers_yield_nothing(self, text):
        """Test that unterminated markers are not emitted."""
        assert extract_tool_calls_from_text(text) == []

    def test_adjacent_markers_in_order(self):
        """Test two different conventions side by side."""
        first = '<invoke name="read_file"><parameter name="path">a.md</parameter></invoke>'
        second = f"{WRENCH} **Tool: search_files**"
        text = f"{first}\n{second}"

        extractions = extract_tool_calls_from_text(text)

        assert [e.name for e in extractions] == ["read_file", "search_files"]
        assert [e.source for e in extractions] == [ExtractionSource.BARE_INVOKE, ExtractionSource.MARKDOWN]
        assert extractions[0].end_index <= extractions[1].start_index
        assert extractions[1].start_index == len(first) + 1

    def test_results_sorted_by_offset(self):
        """Test that order follows the text, not the recognizer order."""
        text = (
            f"{WRENCH} **Tool: first**\n"
            '<tool_result name="second">ok</tool_result>\n'
            '```tool_call\n{"tool": "third"}\n```'
        )
        assert [e.name for e in extract_tool_calls_from_text(text)] == ["first", "second", "third"]

    def test_spans_never_overlap(self):
        """Test pairwise disjoint spans when conventions nest."""
        text = (
            '<tool_call><invoke name="a"><parameter name="p">1</parameter></invoke></tool_call>'
            '<invoke name="b">{"x": 1}</invoke>'
            '<tool_call>{"tool": "c"}</tool_call>'
            f"{WRENCH} **Tool: d**"
        )

        extractions = extract_tool_calls_from_text(text)

        assert [e.name for e in extractions] == ["a", "b", "c", "d"]
        for i, left in enumerate(extractions):
            for right in extractions[i + 1 :]:
                assert left.end_index <= right.start_index

    def test_first_by_offset_wins_regardless_of_recognizer(self):
        """Test the documented quirk: the earliest start wins even for a looser convention.

        The markdown marker's name pattern runs up to the closing ``**``, so it
        swallows the start of the fenced block that follows on the same marker.
        """
        text = f'{WRENCH} **Tool: x ```tool_call\n{{"tool": "y"}}\n``` **'

        extractions = extract_tool_calls_from_text(text)

        assert len(extractions) == 1
        assert extractions[0].source == ExtractionSource.MARKDOWN

    @pytest.mark.parametrize(
        "text",
        [
            '```tool_call\n{"tool": "  ", "arguments": {}}\n```',
            '<tool_call><invoke name="  "></invoke></tool_call>',
            '<tool_call>{"name": ""}</tool_call>',
            '<invoke name=" "><parameter name="a">1</parameter></invoke>',
            '<tool_result name="  ">x</tool_result>',
            f"{WRENCH} **Tool:    **",
        ],
    )
    def test_blank_names_never_emitted(self, text):
        """Test the name filter across all six conventions."""
        assert extract_tool_calls_from_text(text) == []

    def test_blank_name_does_not_block_later_candidate(self):
        """Test that a dropped candidate does not reserve its span."""
        text = f'<tool_call><invoke name=" "><parameter name="p">{WRENCH} **Tool: ok**</parameter></invoke></tool_call>'

        extractions = extract_tool_calls_from_text(text)

        assert [e.name for e in extractions] == ["ok"]
        assert extractions[0].source == ExtractionSource.MARKDOWN

    def test_idempotent(self):
        """Test that scanning the same text twice gives identical results."""
        text = (
            "<think>plan</think>\n"
            '<tool_call>{"tool": "a", "arguments": {"k": [1, 2]}}</tool_call>\n'
            f"{WRENCH} **Tool: b**\n```json\n{{\"ok\": true}}\n```"
        )
        assert extract_tool_calls_from_text(text) == extract_tool_calls_from_text(text)

    def test_growing_buffer(self):
        """Test re-scanning a buffer as streamed text arrives."""
        full = 'Let me check.\n```tool_call\n{"tool": "search_files", "arguments": {"keyword": "hello"}}\n```'
        for cut in (full.index('"arguments"'), full.rindex("```"), len(full) - 1):
            assert extract_tool_calls_from_text(full[:cut]) == []

        [extraction] = extract_tool_calls_from_text(full)
        assert extraction.name == "search_files"
        assert extraction.arguments == {"keyword": "hello"}
        assert extraction.source == ExtractionSource.FENCED_BLOCK
