import unittest
from unittest.mock import MagicMock
import sys
from datetime import datetime
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from controllers.analytics_aggregator import AnalyticsAggregator
from models import (
    InMemoryStorage,
    ProcedureCategory,
    SurgeryComplexity,
    SurgeryStatus,
    EngineSettings,
)
from utils import InvalidInput

REFERENCE = datetime(2025, 9, 30, 15, 0)


class AggregatorTestCase(unittest.TestCase):
    def setUp(self):
        self.storage = InMemoryStorage()
        self.aggregator = AnalyticsAggregator(self.storage)
        self._seq = 0

    def add(self, **fields):
        self._seq += 1
        data = {
            "code": f"P-{self._seq}",
            "name": "Procedimento",
            "patient_id": "pat-1",
            "category": ProcedureCategory.GENERAL_SURGERY,
            "complexity": SurgeryComplexity.PORTE_2,
            "estimated_duration": 60,
            "base_price": 1000.0,
            "created_at": datetime(2025, 9, 1, 8, 0),
        }
        data.update(fields)
        return self.storage.create_procedure(data)


class TestWindow(AggregatorTestCase):
    def test_day_window_covers_reference_day(self):
        start, end = self.aggregator.window("day", REFERENCE)

        self.assertEqual(start, datetime(2025, 9, 30, 0, 0))
        self.assertEqual(end, datetime(2025, 9, 30, 23, 59, 59, 999000))

    def test_calendar_offsets(self):
        self.assertEqual(self.aggregator.window("week", REFERENCE)[0], datetime(2025, 9, 23))
        self.assertEqual(self.aggregator.window("month", REFERENCE)[0], datetime(2025, 8, 30))
        self.assertEqual(self.aggregator.window("quarter", REFERENCE)[0], datetime(2025, 6, 30))
        self.assertEqual(self.aggregator.window("year", REFERENCE)[0], datetime(2024, 9, 30))

    def test_month_end_is_clamped(self):
        start, _ = self.aggregator.window("month", datetime(2025, 3, 31))

        self.assertEqual(start, datetime(2025, 2, 28))

    def test_reference_accepts_iso_string(self):
        start, _ = self.aggregator.window("day", "2025-09-30")

        self.assertEqual(start, datetime(2025, 9, 30))

    def test_unknown_period_fails_before_any_query(self):
        storage = MagicMock()
        aggregator = AnalyticsAggregator(storage)

        for call in (
            lambda: aggregator.statistics("decade", REFERENCE),
            lambda: aggregator.top_procedures("decade", REFERENCE),
            lambda: aggregator.efficiency_metrics("", REFERENCE),
            lambda: aggregator.category_analysis("GENERAL_SURGERY", None, REFERENCE),
            lambda: aggregator.procedures_by_period("fortnight", REFERENCE),
        ):
            with self.assertRaises(InvalidInput):
                call()

        storage.query_procedures.assert_not_called()
        storage.count_procedures.assert_not_called()
        storage.aggregate_procedures.assert_not_called()


class TestStatistics(AggregatorTestCase):
    def test_zero_performed_has_no_division_errors(self):
        self.add(created_at=datetime(2025, 9, 20), scheduled_date=datetime(2025, 10, 2))

        stats = self.aggregator.statistics("month", REFERENCE)

        self.assertEqual(stats.total_created, 1)
        self.assertEqual(stats.total_performed, 0)
        self.assertEqual(stats.completion_rate, 0)
        self.assertEqual(stats.average_duration, 0)
        self.assertEqual(stats.average_price, 0)
        self.assertEqual(stats.total_price, 0)
        self.assertEqual(stats.by_category, [])
        self.assertEqual(stats.by_complexity, [])

    def test_empty_storage(self):
        stats = self.aggregator.statistics("day", REFERENCE)

        self.assertEqual(stats.total_created, 0)
        self.assertEqual(stats.completion_rate, 0)

    def test_counts_rates_and_breakdowns(self):
        self.add(
            status=SurgeryStatus.COMPLETED, performed_date=datetime(2025, 9, 10, 9),
            duration=90, base_price=2000.0, created_at=datetime(2025, 9, 5),
        )
        self.add(
            status=SurgeryStatus.COMPLETED, performed_date=datetime(2025, 9, 12, 9),
            duration=30, base_price=1000.0, created_at=datetime(2025, 9, 5),
            category=ProcedureCategory.ORTHOPEDIC_SURGERY, complexity=SurgeryComplexity.PORTE_3,
        )
        self.add(status=SurgeryStatus.SCHEDULED, scheduled_date=datetime(2025, 9, 29, 8), created_at=datetime(2025, 9, 6))
        self.add(status=SurgeryStatus.CANCELLED, created_at=datetime(2025, 9, 7))
        # fora da janela
        self.add(
            status=SurgeryStatus.COMPLETED, performed_date=datetime(2025, 7, 1, 9),
            created_at=datetime(2025, 6, 20),
        )

        stats = self.aggregator.statistics("month", REFERENCE)

        self.assertEqual(stats.total_created, 4)
        self.assertEqual(stats.total_performed, 2)
        self.assertEqual(stats.total_scheduled, 1)
        self.assertEqual(stats.total_cancelled, 1)
        self.assertAlmostEqual(stats.completion_rate, 50.0)
        self.assertAlmostEqual(stats.average_duration, 60.0)
        self.assertAlmostEqual(stats.average_price, 1500.0)
        self.assertAlmostEqual(stats.total_price, 3000.0)

        by_category = {e.label: e.percent_of_performed for e in stats.by_category}
        self.assertEqual(by_category, {"GENERAL_SURGERY": 50.0, "ORTHOPEDIC_SURGERY": 50.0})
        self.assertEqual(sum(e.count for e in stats.by_complexity), 2)

    def test_statistics_is_idempotent(self):
        self.add(status=SurgeryStatus.COMPLETED, performed_date=datetime(2025, 9, 10, 9), duration=45)
        self.add(created_at=datetime(2025, 9, 11))

        first = self.aggregator.statistics("month", REFERENCE).to_dict()
        second = self.aggregator.statistics("month", REFERENCE).to_dict()

        self.assertEqual(first, second)


class TestEfficiency(AggregatorTestCase):
    def test_one_hour_grace_tolerance(self):
        self.add(
            scheduled_date=datetime(2025, 9, 30, 8, 0),
            performed_date=datetime(2025, 9, 30, 8, 45),
            duration=60,
        )
        self.add(
            scheduled_date=datetime(2025, 9, 30, 10, 0),
            performed_date=datetime(2025, 9, 30, 11, 30),
            duration=120,
        )

        metrics = self.aggregator.efficiency_metrics("day", REFERENCE)

        self.assertEqual(metrics.total_performed, 2)
        self.assertEqual(metrics.on_time, 1)
        self.assertEqual(metrics.late, 1)
        self.assertAlmostEqual(metrics.average_delay_hours, 1.5)
        self.assertAlmostEqual(metrics.punctuality_rate, 50.0)
        self.assertEqual(metrics.window_days, 1)
        self.assertAlmostEqual(metrics.room_utilization, 180 / 1440 * 100)
        self.assertAlmostEqual(metrics.procedures_per_day, 2.0)

    def test_exactly_one_hour_is_on_time(self):
        self.add(
            scheduled_date=datetime(2025, 9, 30, 8, 0),
            performed_date=datetime(2025, 9, 30, 9, 0),
        )

        metrics = self.aggregator.efficiency_metrics("day", REFERENCE)

        self.assertEqual(metrics.on_time, 1)
        self.assertEqual(metrics.average_delay_hours, 0)

    def test_custom_tolerance(self):
        self.add(
            scheduled_date=datetime(2025, 9, 30, 8, 0),
            performed_date=datetime(2025, 9, 30, 8, 45),
        )
        aggregator = AnalyticsAggregator(self.storage, settings=EngineSettings(on_time_tolerance_hours=0.5))

        metrics = aggregator.efficiency_metrics("day", REFERENCE)

        self.assertEqual(metrics.late, 1)
        self.assertAlmostEqual(metrics.average_delay_hours, 0.75)

    def test_no_procedures(self):
        metrics = self.aggregator.efficiency_metrics("week", REFERENCE)

        self.assertEqual(metrics.total_performed, 0)
        self.assertEqual(metrics.punctuality_rate, 0)
        self.assertEqual(metrics.room_utilization, 0)
        self.assertEqual(metrics.procedures_per_day, 0)
        self.assertEqual(metrics.window_days, 8)


class TestTopAndCategory(AggregatorTestCase):
    def setUp(self):
        super().setUp()
        for day in (3, 4, 5):
            self.add(
                code=f"CHOL-{day}", name="Colecistectomia",
                performed_date=datetime(2025, 9, day, 9), duration=60, base_price=2000.0,
            )
        self.add(
            code="KNEE-1", name="Artroplastia", category=ProcedureCategory.ORTHOPEDIC_SURGERY,
            complexity=SurgeryComplexity.PORTE_4, performed_date=datetime(2025, 9, 8, 9),
            duration=180, base_price=9000.0, complications="Sangramento",
        )
        self.add(
            code="HERN-1", name="Herniorrafia", complexity=SurgeryComplexity.PORTE_3,
            performed_date=datetime(2025, 9, 9, 9), duration=90, base_price=3000.0,
            complications="  ",
        )

    def test_top_procedures_ordered_by_count(self):
        # códigos distintos formam grupos distintos
        top = self.aggregator.top_procedures("month", REFERENCE, limit=10)

        self.assertEqual(len(top), 5)
        self.assertTrue(all(t.count == 1 for t in top))

    def test_top_procedures_group_by_code(self):
        for day in (10, 11):
            self.add(
                code="KNEE-1-B", name="Artroplastia revisão",
                performed_date=datetime(2025, 9, day, 9), duration=100, base_price=500.0,
            )

        top = self.aggregator.top_procedures("month", REFERENCE, limit=1)

        self.assertEqual(len(top), 1)
        self.assertEqual(top[0].code, "KNEE-1-B")
        self.assertEqual(top[0].count, 2)
        self.assertAlmostEqual(top[0].average_price, 500.0)
        self.assertAlmostEqual(top[0].average_duration, 100.0)
        self.assertAlmostEqual(top[0].total_duration, 200.0)

    def test_invalid_limit(self):
        with self.assertRaises(InvalidInput):
            self.aggregator.top_procedures("month", REFERENCE, limit=0)

    def test_category_analysis(self):
        analysis = self.aggregator.category_analysis("GENERAL_SURGERY", "month", REFERENCE)

        self.assertEqual(analysis.total_performed, 4)
        self.assertAlmostEqual(analysis.total_price, 9000.0)
        self.assertAlmostEqual(analysis.total_duration, 270.0)
        self.assertAlmostEqual(analysis.average_duration, 67.5)
        self.assertEqual(analysis.complex_count, 1)
        self.assertEqual(analysis.complication_rate, 0)

        ortho = self.aggregator.category_analysis(ProcedureCategory.ORTHOPEDIC_SURGERY, "month", REFERENCE)
        self.assertEqual(ortho.complex_count, 1)
        self.assertAlmostEqual(ortho.complication_rate, 100.0)

    def test_category_analysis_empty_and_invalid(self):
        empty = self.aggregator.category_analysis("NEUROSURGERY", "month", REFERENCE)
        self.assertEqual(empty.total_performed, 0)
        self.assertEqual(empty.average_duration, 0)
        self.assertEqual(empty.complication_rate, 0)

        with self.assertRaises(InvalidInput):
            self.aggregator.category_analysis("MAGIC_SURGERY", "month", REFERENCE)

    def test_procedures_by_period_newest_first(self):
        procedures = self.aggregator.procedures_by_period("month", REFERENCE)

        dates = [p.performed_date for p in procedures]
        self.assertEqual(len(procedures), 5)
        self.assertEqual(dates, sorted(dates, reverse=True))

    def test_procedures_by_period_status_filter(self):
        self.add(
            code="X-1", status=SurgeryStatus.COMPLETED,
            performed_date=datetime(2025, 9, 20, 9),
        )

        completed = self.aggregator.procedures_by_period("month", REFERENCE, status="COMPLETED")

        self.assertEqual([p.code for p in completed], ["X-1"])

    def test_history_and_hospital_scope(self):
        self.add(code="OLD-1", performed_date=datetime(2020, 1, 1, 9), hospital="hosp-2")
        self.add(code="NOT-DONE", hospital="hosp-2")

        history = self.aggregator.procedures_history()
        self.assertEqual(len(history), 6)
        self.assertEqual(history[-1].code, "OLD-1")

        scoped = AnalyticsAggregator(self.storage, hospital="hosp-2")
        self.assertEqual([p.code for p in scoped.procedures_history()], ["OLD-1"])
        self.assertEqual(scoped.statistics("month", REFERENCE).total_performed, 0)


if __name__ == "__main__":
    unittest.main()
