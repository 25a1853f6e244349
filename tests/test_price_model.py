import unittest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from controllers.price_model import PriceModel
from models import SurgeryComplexity, EngineSettings
from utils import InvalidInput


class TestPriceModel(unittest.TestCase):
    def setUp(self):
        self.model = PriceModel()

    def test_base_rates_per_complexity(self):
        expected = {
            SurgeryComplexity.PORTE_1: 500.0,
            SurgeryComplexity.PORTE_2: 1500.0,
            SurgeryComplexity.PORTE_3: 3000.0,
            SurgeryComplexity.PORTE_4: 5000.0,
            SurgeryComplexity.PORTE_ESPECIAL: 8000.0,
        }
        for complexity, rate in expected.items():
            self.assertEqual(self.model.price(complexity, 60), rate)

    def test_short_procedures_are_never_discounted(self):
        for complexity in SurgeryComplexity:
            one_hour = self.model.price(complexity, 60)
            for minutes in (0, 15, 30, 59):
                self.assertEqual(self.model.price(complexity, minutes), one_hour)

    def test_price_grows_with_duration_after_one_hour(self):
        for complexity in SurgeryComplexity:
            prices = [self.model.price(complexity, m) for m in range(60, 361, 15)]
            self.assertEqual(prices, sorted(prices))

    def test_ninety_minutes_multiplies_by_one_and_a_half(self):
        self.assertEqual(self.model.price(SurgeryComplexity.PORTE_2, 90), 2250.0)

    def test_price_is_rounded_to_cents(self):
        # 500 * 61 / 60 = 508.3333...
        self.assertEqual(self.model.price(SurgeryComplexity.PORTE_1, 61), 508.33)
        # 500 * 67 / 60 = 558.3333...
        self.assertEqual(self.model.price("PORTE_1", 67), 558.33)

    def test_accepts_complexity_tokens(self):
        self.assertEqual(self.model.price("porte_3", 120), 6000.0)

    def test_negative_duration_is_rejected(self):
        with self.assertRaises(InvalidInput):
            self.model.price(SurgeryComplexity.PORTE_1, -1)

    def test_unknown_complexity_is_rejected(self):
        with self.assertRaises(InvalidInput):
            self.model.price("PORTE_9", 60)

    def test_custom_rates_from_settings(self):
        model = PriceModel(EngineSettings(price_base_rates={"PORTE_1": 700}))

        self.assertEqual(model.price(SurgeryComplexity.PORTE_1, 60), 700.0)
        self.assertEqual(model.price(SurgeryComplexity.PORTE_2, 60), 1500.0)


if __name__ == "__main__":
    unittest.main()
