"""Tests for cyclebench.bench.stats: the mean and margin-of-error estimator."""

from __future__ import annotations

import json
import math
import random
import unittest

from cyclebench.bench.stats import (
    NORMAL_CRITICAL_VALUE,
    T_TABLE,
    Timings,
    _percentile,
    critical_value,
    estimate,
    json_float,
    summarize,
)


# ---------------------------------------------------------------------------
# Critical values
# ---------------------------------------------------------------------------


class TestCriticalValue(unittest.TestCase):
    """Tests for critical_value() and the t-table."""

    def test_table_covers_1_to_30(self) -> None:
        self.assertEqual(sorted(T_TABLE), list(range(1, 31)))

    def test_known_values(self) -> None:
        self.assertEqual(critical_value(1), 12.706)
        self.assertEqual(critical_value(4), 2.776)
        self.assertEqual(critical_value(10), 2.228)
        self.assertEqual(critical_value(30), 2.042)

    def test_beyond_table_uses_normal_approximation(self) -> None:
        self.assertEqual(critical_value(31), NORMAL_CRITICAL_VALUE)
        self.assertEqual(critical_value(1000), 1.96)

    def test_zero_and_negative_df_treated_as_one(self) -> None:
        self.assertEqual(critical_value(0), 12.706)
        self.assertEqual(critical_value(-3), 12.706)

    def test_fractional_df_is_rounded(self) -> None:
        self.assertEqual(critical_value(3.6), T_TABLE[4])
        self.assertEqual(critical_value(3.4), T_TABLE[3])

    def test_values_decrease_towards_normal(self) -> None:
        values = [critical_value(df) for df in range(1, 32)]
        self.assertEqual(values, sorted(values, reverse=True))
        self.assertGreater(values[-2], NORMAL_CRITICAL_VALUE)


# ---------------------------------------------------------------------------
# estimate()
# ---------------------------------------------------------------------------


class TestEstimate(unittest.TestCase):
    """Tests for estimate() and Timings."""

    def test_known_values(self) -> None:
        """Five samples: population stdev, df = 4, t = 2.776."""
        t = estimate([1.0, 2.0, 3.0, 4.0, 5.0])
        self.assertEqual(t.sample_count, 5)
        self.assertAlmostEqual(t.mean_time, 3.0)
        self.assertAlmostEqual(t.stdev, math.sqrt(2.0))
        self.assertAlmostEqual(t.standard_error, math.sqrt(2.0) / math.sqrt(5.0))
        self.assertEqual(t.critical_value, 2.776)
        expected_moe = math.sqrt(2.0) / math.sqrt(5.0) * 2.776
        self.assertAlmostEqual(t.margin_of_error, expected_moe)
        self.assertAlmostEqual(t.relative_margin_of_error, expected_moe / 3.0)

    def test_population_not_sample_stdev(self) -> None:
        """Divides by n: [1, 3] has stdev 1.0, not sqrt(2)."""
        t = estimate([1.0, 3.0])
        self.assertAlmostEqual(t.stdev, 1.0)

    def test_large_sample_uses_normal_critical_value(self) -> None:
        t = estimate([float(i % 7 + 1) for i in range(40)])
        self.assertEqual(t.critical_value, 1.96)

    def test_thirty_one_samples_still_in_table(self) -> None:
        """31 samples means df = 30, the last table entry."""
        t = estimate([float(i % 3 + 1) for i in range(31)])
        self.assertEqual(t.critical_value, 2.042)

    def test_empty(self) -> None:
        t = estimate([])
        self.assertEqual(t.sample_count, 0)
        self.assertTrue(math.isnan(t.mean_time))
        self.assertEqual(t.relative_margin_of_error, math.inf)
        self.assertFalse(t.converged)

    def test_single_sample_is_degenerate(self) -> None:
        t = estimate([0.5])
        self.assertEqual(t.sample_count, 1)
        self.assertAlmostEqual(t.mean_time, 0.5)
        self.assertEqual(t.stdev, 0.0)
        self.assertEqual(t.relative_margin_of_error, math.inf)

    def test_zero_mean_is_degenerate(self) -> None:
        t = estimate([0.0, 0.0, 0.0])
        self.assertEqual(t.mean_time, 0.0)
        self.assertEqual(t.relative_margin_of_error, math.inf)

    def test_constant_samples_have_zero_margin(self) -> None:
        t = estimate([0.001] * 20)
        self.assertEqual(t.stdev, 0.0)
        self.assertEqual(t.margin_of_error, 0.0)
        self.assertEqual(t.relative_margin_of_error, 0.0)
        self.assertTrue(t.converged)

    def test_finite_for_varying_samples(self) -> None:
        t = estimate([0.9, 1.1])
        self.assertTrue(math.isfinite(t.relative_margin_of_error))
        self.assertGreater(t.relative_margin_of_error, 0)

    def test_pure_function(self) -> None:
        samples = [1.0, 2.0, 4.0]
        first = estimate(samples)
        samples.append(8.0)
        estimate(samples)
        self.assertEqual(estimate([1.0, 2.0, 4.0]), first)

    def test_concatenation_matches_merged_estimate(self) -> None:
        a = [0.010, 0.012, 0.011]
        b = [0.013, 0.009]
        merged = estimate(a + b)
        again = estimate(list(a) + list(b))
        self.assertEqual(merged.mean_time, again.mean_time)

    def test_margin_shrinks_with_more_samples_on_average(self) -> None:
        """More i.i.d. samples give a smaller relative margin, on average."""
        rng = random.Random(1234)

        def mean_rme(n: int) -> float:
            trials = [
                estimate([rng.gauss(1.0, 0.1) for _ in range(n)]).relative_margin_of_error
                for _ in range(200)
            ]
            return sum(trials) / len(trials)

        rme_5 = mean_rme(5)
        rme_20 = mean_rme(20)
        rme_100 = mean_rme(100)
        self.assertGreater(rme_5, rme_20)
        self.assertGreater(rme_20, rme_100)

    def test_to_dict(self) -> None:
        d = estimate([1.0, 2.0]).to_dict()
        self.assertEqual(d["sample_count"], 2)
        self.assertIn("relative_margin_of_error", d)
        self.assertIn("critical_value", d)

    def test_to_dict_undefined_values_are_none(self) -> None:
        for samples in ([], [0.5], [0.0, 0.0]):
            with self.subTest(samples=samples):
                d = estimate(samples).to_dict()
                self.assertIsNone(d["relative_margin_of_error"])
                json.dumps(d, allow_nan=False)
        self.assertIsNone(estimate([]).to_dict()["mean_time"])
        unstable = Timings(sample_count=1, mean_time=0.5, relative_margin_of_error=math.inf)
        self.assertIsNone(unstable.to_dict()["margin_of_error"])
        self.assertEqual(estimate([0.5]).to_dict()["mean_time"], 0.5)

    def test_json_float(self) -> None:
        self.assertEqual(json_float(0.25), 0.25)
        self.assertEqual(json_float(0.1234567891234, 9), round(0.1234567891234, 9))
        for value in (math.inf, -math.inf, math.nan):
            with self.subTest(value=value):
                self.assertIsNone(json_float(value))
                self.assertIsNone(json_float(value, 9))

    def test_timings_defaults(self) -> None:
        t = Timings(sample_count=3, mean_time=1.0, relative_margin_of_error=0.1)
        self.assertEqual(t.margin_of_error, math.inf)
        self.assertTrue(t.converged)


# ---------------------------------------------------------------------------
# summarize()
# ---------------------------------------------------------------------------


class TestSummarize(unittest.TestCase):
    """Tests for summarize() and _percentile()."""

    def test_basic(self) -> None:
        s = summarize([5.0, 1.0, 3.0, 2.0, 4.0])
        self.assertEqual(s.n, 5)
        self.assertEqual(s.min, 1.0)
        self.assertEqual(s.max, 5.0)
        self.assertEqual(s.median, 3.0)
        self.assertAlmostEqual(s.q1, 2.0)
        self.assertAlmostEqual(s.q3, 4.0)
        self.assertAlmostEqual(s.iqr, 2.0)

    def test_empty(self) -> None:
        s = summarize([])
        self.assertEqual(s.n, 0)
        self.assertTrue(math.isnan(s.median))

    def test_percentile_interpolates(self) -> None:
        values = [1.0, 2.0, 3.0, 4.0, 5.0, 6.0, 7.0, 8.0]
        self.assertAlmostEqual(_percentile(values, 0.25), 2.75)
        self.assertAlmostEqual(_percentile(values, 0.75), 6.25)

    def test_percentile_single_value(self) -> None:
        self.assertEqual(_percentile([42.0], 0.9), 42.0)

    def test_to_dict_rounds(self) -> None:
        d = summarize([0.1234567891234, 0.2]).to_dict()
        self.assertEqual(d["n"], 2)
        self.assertEqual(d["min"], round(0.1234567891234, 9))

    def test_to_dict_empty_is_strict_json(self) -> None:
        d = summarize([]).to_dict()
        self.assertEqual(d["n"], 0)
        for key in ("min", "max", "median", "q1", "q3"):
            self.assertIsNone(d[key])
        json.dumps(d, allow_nan=False)


if __name__ == "__main__":
    unittest.main()
