import unittest
from datetime import date, datetime, timezone

from billing_core.metrics import aggregate_metrics, as_utc, classify_status

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def invoice(client_id, status, amount, due_date=None):
    return {
        'clientId': client_id,
        'status': status,
        'dueDate': due_date,
        'lineItems': [{'quantity': 1, 'rate': amount}],
    }


class MetricsTestCase(unittest.TestCase):
    def test_paid_counts_as_received_in_any_case(self):
        metrics = aggregate_metrics([invoice(1, 'PAID', 100), invoice(1, 'paid', 50)], now=NOW)
        self.assertAlmostEqual(metrics.total_received_amount, 150.0)
        self.assertEqual(metrics.total_pending_amount, 0.0)
        self.assertEqual(metrics.unpaid_client_count, 0)

    def test_pending_and_overdue(self):
        metrics = aggregate_metrics([
            invoice(1, 'SENT', 100, '2024-05-01'),
            invoice(2, 'unpaid', 40, '2024-07-01'),
            invoice(2, 'Overdue', 10, date(2024, 5, 31)),
        ], now=NOW)
        self.assertAlmostEqual(metrics.total_pending_amount, 150.0)
        self.assertAlmostEqual(metrics.total_overdue_amount, 110.0)
        self.assertEqual(metrics.unpaid_client_count, 2)

    def test_future_or_missing_due_date_is_not_overdue(self):
        metrics = aggregate_metrics([
            invoice(1, 'SENT', 100, '2024-06-02'),
            invoice(1, 'SENT', 100),
        ], now=NOW)
        self.assertAlmostEqual(metrics.total_pending_amount, 200.0)
        self.assertEqual(metrics.total_overdue_amount, 0.0)
        self.assertEqual(metrics.unpaid_client_count, 1)

    def test_draft_cancelled_uncollectible_excluded(self):
        metrics = aggregate_metrics([
            invoice(1, 'DRAFT', 100, '2020-01-01'),
            invoice(2, 'CANCELLED', 100),
            invoice(3, 'UNCOLLECTIBLE', 100),
        ], now=NOW)
        self.assertEqual(metrics.to_dict(), {
            'totalReceivedAmount': 0.0,
            'totalPendingAmount': 0.0,
            'totalOverdueAmount': 0.0,
            'unpaidClientCount': 0,
        })

    def test_unknown_status_is_ignored(self):
        # Statuses outside the known set are left out of every bucket.
        self.assertIsNone(classify_status('PARTIALLY_PAID'))
        metrics = aggregate_metrics([invoice(1, 'PARTIALLY_PAID', 100, '2020-01-01')], now=NOW)
        self.assertEqual(metrics.total_pending_amount, 0.0)
        self.assertEqual(metrics.unpaid_client_count, 0)

    def test_empty_input(self):
        metrics = aggregate_metrics([], now=NOW)
        self.assertEqual(metrics.total_received_amount, 0.0)
        self.assertEqual(metrics.unpaid_client_count, 0)

    def test_as_utc(self):
        self.assertEqual(as_utc(date(2024, 1, 2)), datetime(2024, 1, 2, tzinfo=timezone.utc))
        self.assertEqual(as_utc(datetime(2024, 1, 2, 3)), datetime(2024, 1, 2, 3, tzinfo=timezone.utc))
        self.assertIsNone(as_utc('not a date'))


if __name__ == '__main__':
    unittest.main()
