import unittest

from billing_core.totals import (
    calculate_invoice_total, compute_totals, format_amount, parse_line_items, to_number,
)


class TotalsTestCase(unittest.TestCase):
    items = [
        {'description': 'Design work', 'quantity': 2, 'rate': 50},
        {'description': 'Hosting', 'quantity': 1, 'rate': 100},
    ]

    def test_discount_applied_before_tax(self):
        totals = compute_totals(self.items, discount=10, tax_rate=5, previous_dues=0)
        self.assertAlmostEqual(totals.subtotal, 200.0)
        self.assertAlmostEqual(totals.discount_amount, 20.0)
        self.assertAlmostEqual(totals.subtotal_after_discount, 180.0)
        self.assertAlmostEqual(totals.tax_amount, 9.0)
        self.assertAlmostEqual(totals.total, 189.0)

    def test_previous_dues_added_last(self):
        invoice = {'lineItems': self.items, 'discount': 10, 'taxRate': 5, 'previousDues': 11}
        self.assertAlmostEqual(calculate_invoice_total(invoice), 200.0)

    def test_snake_case_fields_and_serialized_items(self):
        invoice = {
            'line_items': '[{"quantity": 3, "rate": 10}]',
            'tax_rate': '10',
            'previous_dues': None,
        }
        self.assertAlmostEqual(calculate_invoice_total(invoice), 33.0)

    def test_empty_and_missing_items_total_zero(self):
        self.assertEqual(calculate_invoice_total({'lineItems': []}), 0.0)
        self.assertEqual(calculate_invoice_total({}), 0.0)
        self.assertEqual(calculate_invoice_total(None), 0.0)

    def test_malformed_line_items_treated_as_empty(self):
        self.assertEqual(parse_line_items('{not json'), [])
        self.assertEqual(parse_line_items('{"quantity": 1}'), [])
        self.assertEqual(calculate_invoice_total({'lineItems': '{not json', 'previousDues': 5}), 5.0)

    def test_non_numeric_values_count_as_zero(self):
        items = [{'quantity': 'abc', 'rate': 10}, {'quantity': 2, 'rate': None}, {'quantity': '4', 'rate': '2.5'}]
        totals = compute_totals(items, discount='n/a', tax_rate=None)
        self.assertAlmostEqual(totals.subtotal, 10.0)
        self.assertAlmostEqual(totals.total, 10.0)

    def test_negative_values_pass_through(self):
        totals = compute_totals([{'quantity': -1, 'rate': 10}])
        self.assertAlmostEqual(totals.total, -10.0)

    def test_no_intermediate_rounding(self):
        totals = compute_totals([{'quantity': 1, 'rate': 0.333}], tax_rate=10)
        self.assertAlmostEqual(totals.total, 0.3663)
        self.assertEqual(format_amount(totals.total), '0.37')

    def test_to_number(self):
        self.assertEqual(to_number(True), 0.0)
        self.assertEqual(to_number(float('nan')), 0.0)
        self.assertEqual(to_number(' 7 '), 7.0)
        self.assertEqual(to_number([1]), 0.0)


if __name__ == '__main__':
    unittest.main()
