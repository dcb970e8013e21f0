"""Tests for cyclebench.bench.config."""

from __future__ import annotations

import math
import os.path
import tempfile
import unittest
from pathlib import Path

import profile_targets
from bench_test_helpers import make_config

from cyclebench.bench.config import (
    DEFAULT_INITIAL_COUNT,
    DEFAULT_MAX_TIME,
    BenchmarkConfig,
    ConfigurationError,
    check_config,
    configs_from_profile,
    load_profile,
    resolve_callable,
    validate_config,
)


# ---------------------------------------------------------------------------
# BenchmarkConfig and validation
# ---------------------------------------------------------------------------


class TestBenchmarkConfig(unittest.TestCase):
    def test_defaults(self) -> None:
        config = BenchmarkConfig(name="x", operation=lambda: None)
        self.assertEqual(config.max_time, DEFAULT_MAX_TIME)
        self.assertEqual(config.initial_count, DEFAULT_INITIAL_COUNT)
        self.assertFalse(config.synchronous)
        self.assertIsNone(config.setup_once)
        self.assertIsNone(config.setup_per_cycle)

    def test_target_cycle_time(self) -> None:
        self.assertEqual(make_config(max_time=30.0).target_cycle_time, 3.0)

    def test_frozen(self) -> None:
        config = make_config()
        with self.assertRaises(AttributeError):
            config.max_time = 5.0  # type: ignore[misc]


class TestValidateConfig(unittest.TestCase):
    def test_valid(self) -> None:
        self.assertEqual(validate_config(make_config()), [])

    def test_non_positive_max_time(self) -> None:
        for value in (0, 0.0, -1.0):
            with self.subTest(value=value):
                errors = validate_config(make_config(max_time=value))
                self.assertEqual([e.field for e in errors], ["max_time"])

    def test_non_numeric_max_time(self) -> None:
        for value in ("10", None, True):
            with self.subTest(value=value):
                errors = validate_config(make_config(max_time=value))
                self.assertEqual([e.field for e in errors], ["max_time"])

    def test_nan_max_time(self) -> None:
        errors = validate_config(make_config(max_time=float("nan")))
        self.assertEqual([e.field for e in errors], ["max_time"])

    def test_infinite_max_time(self) -> None:
        for value in (math.inf, -math.inf):
            with self.subTest(value=value):
                errors = validate_config(make_config(max_time=value))
                self.assertEqual([e.field for e in errors], ["max_time"])
                self.assertIn("finite", errors[0].message)

    def test_bad_initial_count(self) -> None:
        for value in (0, -5, 1.5, False):
            with self.subTest(value=value):
                errors = validate_config(make_config(initial_count=value))
                self.assertEqual([e.field for e in errors], ["initial_count"])

    def test_operation_not_callable(self) -> None:
        errors = validate_config(make_config(operation="nope"))
        self.assertEqual(errors[0].field, "operation")
        self.assertEqual(errors[0].severity, "error")

    def test_hook_not_callable(self) -> None:
        errors = validate_config(make_config(setup_once=1, setup_per_cycle="x"))
        self.assertEqual(sorted(e.field for e in errors), ["setup_once", "setup_per_cycle"])

    def test_empty_name_is_warning(self) -> None:
        errors = validate_config(make_config(name="  "))
        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].severity, "warning")


class TestCheckConfig(unittest.TestCase):
    def test_raises_on_errors(self) -> None:
        with self.assertRaises(ConfigurationError) as cm:
            check_config(make_config(name="bad", max_time=-1, initial_count=0))
        self.assertEqual(cm.exception.name, "bad")
        self.assertEqual(len(cm.exception.errors), 2)
        self.assertIn("max_time", str(cm.exception))
        self.assertIsInstance(cm.exception, ValueError)

    def test_logs_warnings_only(self) -> None:
        with self.assertLogs("cyclebench", level="WARNING") as cm:
            check_config(make_config(name=""))
        self.assertIn("name", cm.output[0])


# ---------------------------------------------------------------------------
# resolve_callable
# ---------------------------------------------------------------------------


class TestResolveCallable(unittest.TestCase):
    def test_module_function(self) -> None:
        self.assertIs(resolve_callable("os.path:join"), os.path.join)

    def test_dotted_attribute(self) -> None:
        self.assertIs(resolve_callable("profile_targets:Suite.insert"), profile_targets.Suite.insert)

    def test_missing_colon(self) -> None:
        with self.assertRaises(ValueError):
            resolve_callable("os.path.join")

    def test_empty_parts(self) -> None:
        for ref in (":join", "os.path:", " : "):
            with self.subTest(ref=ref):
                with self.assertRaises(ValueError):
                    resolve_callable(ref)

    def test_unknown_module(self) -> None:
        with self.assertRaisesRegex(ValueError, "Cannot import"):
            resolve_callable("no_such_module_xyz:f")

    def test_unknown_attribute(self) -> None:
        with self.assertRaisesRegex(ValueError, "no attribute"):
            resolve_callable("profile_targets:missing")

    def test_not_callable(self) -> None:
        with self.assertRaisesRegex(ValueError, "not callable"):
            resolve_callable("profile_targets:NOT_CALLABLE")


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class TestLoadProfile(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_load(self) -> None:
        path = self.tmp / "profile.yaml"
        path.write_text(
            "name: demo\nmax_time: 5\nbenchmarks:\n  - operation: 'profile_targets:noop'\n"
        )
        data = load_profile(path)
        self.assertEqual(data["name"], "demo")
        self.assertEqual(data["max_time"], 5)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_profile(self.tmp / "nope.yaml")

    def test_not_a_mapping(self) -> None:
        path = self.tmp / "list.yaml"
        path.write_text("- a\n- b\n")
        with self.assertRaises(ValueError):
            load_profile(path)


class TestConfigsFromProfile(unittest.TestCase):
    def test_basic_entry(self) -> None:
        configs = configs_from_profile(
            {
                "benchmarks": [
                    {
                        "name": "noop",
                        "operation": "profile_targets:noop",
                        "setup_once": "profile_targets:prepare",
                        "setup_per_cycle": "profile_targets:refill",
                        "synchronous": True,
                    }
                ]
            }
        )
        self.assertEqual(len(configs), 1)
        config = configs[0]
        self.assertEqual(config.name, "noop")
        self.assertIs(config.operation, profile_targets.noop)
        self.assertIs(config.setup_once, profile_targets.prepare)
        self.assertIs(config.setup_per_cycle, profile_targets.refill)
        self.assertTrue(config.synchronous)
        self.assertEqual(config.max_time, DEFAULT_MAX_TIME)
        self.assertEqual(config.initial_count, DEFAULT_INITIAL_COUNT)

    def test_name_defaults_to_reference(self) -> None:
        configs = configs_from_profile({"benchmarks": [{"operation": "profile_targets:noop"}]})
        self.assertEqual(configs[0].name, "profile_targets:noop")

    def test_precedence(self) -> None:
        data = {
            "max_time": 10,
            "initial_count": 3,
            "benchmarks": [
                {"operation": "profile_targets:noop", "max_time": 4},
                {"operation": "profile_targets:slow_noop"},
            ],
        }
        configs = configs_from_profile(data)
        self.assertEqual([c.max_time for c in configs], [4, 10])
        self.assertEqual([c.initial_count for c in configs], [3, 3])

        configs = configs_from_profile(data, cli_overrides={"max_time": 1.5, "initial_count": None})
        self.assertEqual([c.max_time for c in configs], [1.5, 1.5])
        self.assertEqual([c.initial_count for c in configs], [3, 3])

    def test_factory_entry(self) -> None:
        configs = configs_from_profile(
            {"max_time": 10, "benchmarks": [{"factory": "profile_targets:make_config"}]}
        )
        self.assertEqual(configs[0].name, "from-factory")
        # Profile-level defaults do not override what the factory chose.
        self.assertEqual(configs[0].max_time, 2.0)

    def test_factory_entry_with_overrides(self) -> None:
        configs = configs_from_profile(
            {
                "benchmarks": [
                    {"factory": "profile_targets:make_config", "name": "renamed", "initial_count": 4}
                ]
            },
            cli_overrides={"max_time": 0.5},
        )
        self.assertEqual(configs[0].name, "renamed")
        self.assertEqual(configs[0].initial_count, 4)
        self.assertEqual(configs[0].max_time, 0.5)

    def test_factory_must_return_config(self) -> None:
        with self.assertRaisesRegex(ValueError, "expected BenchmarkConfig"):
            configs_from_profile({"benchmarks": [{"factory": "profile_targets:make_not_a_config"}]})

    def test_missing_benchmarks(self) -> None:
        for data in ({}, {"benchmarks": []}, {"benchmarks": "x"}):
            with self.subTest(data=data):
                with self.assertRaises(ValueError):
                    configs_from_profile(data)

    def test_entry_not_mapping(self) -> None:
        with self.assertRaisesRegex(ValueError, "#2"):
            configs_from_profile({"benchmarks": [{"operation": "profile_targets:noop"}, "x"]})

    def test_entry_without_operation(self) -> None:
        with self.assertRaisesRegex(ValueError, "operation"):
            configs_from_profile({"benchmarks": [{"name": "lonely"}]})

    def test_unresolvable_operation(self) -> None:
        with self.assertRaises(ValueError):
            configs_from_profile({"benchmarks": [{"operation": "profile_targets:missing"}]})


if __name__ == "__main__":
    unittest.main()
