# Self-Improving Coding Agent
# Copyright (c) 2025 Maxime Robeyns
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.
"""Tests for the tool-call loop heuristics."""
import json
import pytest

from coding_runtime.config import LoopDetectionConfig
from coding_runtime.orchestration.loop_detection import (
    ToolCallRecord,
    argument_similarity,
    detect_loop,
)


def record(name: str, **args) -> ToolCallRecord:
    return ToolCallRecord(tool_name=name, arguments=json.dumps(args))


class TestArgumentSimilarity:

    def test_identical_objects(self):
        assert argument_similarity('{"a": 1, "b": "x"}', '{"b": "x", "a": 1}') == 1.0

    def test_both_empty(self):
        assert argument_similarity("{}", "{}") == 1.0

    def test_partial_key_overlap(self):
        assert argument_similarity('{"a": 1, "b": 2}', '{"a": 1, "c": 2}') == pytest.approx(1 / 3)

    def test_string_prefix_match(self):
        a = json.dumps({"path": "src/module/file_one.py"})
        b = json.dumps({"path": "src/module/file_two.py"})
        assert argument_similarity(a, b) == 1.0

    def test_short_strings_must_match_exactly(self):
        assert argument_similarity('{"q": "abc"}', '{"q": "abd"}') == 0.0

    def test_non_object_falls_back_to_characters(self):
        assert argument_similarity("abcd", "abcx") == pytest.approx(0.75)
        assert argument_similarity("[1, 2]", "[1, 2]") == 1.0


class TestDetectLoop:

    def test_no_history(self):
        assert detect_loop([]) is None

    def test_varied_calls_pass(self):
        history = [record("read", file_path=f"file_{i}.py") for i in range(3)]
        history += [record("write", file_path="a.py", content="x"), record("bash", command="pytest")]
        assert detect_loop(history) is None

    def test_non_exploratory_streak_trips_on_eighth_call(self):
        history = [record("bash", command="make") for _ in range(7)]
        assert detect_loop(history) is None
        history.append(record("bash", command="make"))
        reason = detect_loop(history)
        assert reason is not None
        assert "bash" in reason

    def test_exploratory_streak_trips_on_twelfth_call(self):
        history = [record("read", file_path="same.py") for _ in range(11)]
        assert detect_loop(history) is None
        history.append(record("read", file_path="same.py"))
        reason = detect_loop(history)
        assert reason is not None
        assert "exploratory" in reason

    def test_streak_counts_only_the_trailing_run(self):
        history = [record("bash", command="ls")] * 7 + [record("write", file_path="a")] + [
            record("bash", command="ls")
        ] * 7
        assert detect_loop(history) is None

    def test_repeated_pattern(self):
        pattern = [record("read", file_path="a.py"), record("write", file_path="a.py", content="x")]
        assert detect_loop(pattern) is None
        reason = detect_loop(pattern + pattern)
        assert reason is not None
        assert "read -> write" in reason

    def test_pattern_with_different_arguments_passes(self):
        history = [
            record("read", file_path="a.py"),
            record("write", file_path="a.py", content="1"),
            record("read", file_path="b.py"),
            record("write", file_path="b.py", content="2"),
        ]
        assert detect_loop(history) is None

    def test_volume_cap(self):
        names = ["read", "write", "bash", "ls", "glob"]
        history = [record(names[i % 5], n=i) for i in range(51)]
        assert detect_loop(history[:50]) is None
        reason = detect_loop(history)
        assert reason is not None
        assert "too many" in reason

    def test_custom_thresholds(self):
        config = LoopDetectionConfig(streak_limit=3)
        history = [record("bash", command="x")] * 3
        assert detect_loop(history, config) is not None
