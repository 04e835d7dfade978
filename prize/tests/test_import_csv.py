import io
from unittest import mock

from django.test import SimpleTestCase

import import_prize_csv
from import_prize_csv import InventoryRow, load_rows, read_rows


class ReadRowsTests(SimpleTestCase):
    def test_parses_rows_and_skips_invalid_ones(self):
        handle = io.StringIO(
            "campaign,store,prize,stock\n"
            "summer-2026,Downtown,Mug,10\n"
            "summer-2026,Downtown,Cap,abc\n"
            "summer-2026,,Cap,3\n"
            "summer-2026,Airport,Scarf,-1\n"
            "summer-2026,Airport,Scarf,0\n"
        )

        with mock.patch("sys.stderr", new_callable=io.StringIO):
            rows = read_rows(handle)

        self.assertEqual(
            rows,
            [
                InventoryRow("summer-2026", "Downtown", "Mug", 10),
                InventoryRow("summer-2026", "Airport", "Scarf", 0),
            ],
        )

    def test_rejects_unexpected_headers(self):
        with self.assertRaises(ValueError):
            read_rows(io.StringIO("id,name,stock\n1,Mug,3\n"))

    def test_parses_database_url(self):
        parsed = import_prize_csv._parse_mysql_url("mysql://promo:s3cr%40t@db:3307/promo?charset=utf8")

        self.assertEqual(parsed, ("db", 3307, "promo", "s3cr@t", "promo", "utf8"))
        with self.assertRaises(ValueError):
            import_prize_csv._parse_mysql_url("postgres://db/promo")


class LoadRowsTests(SimpleTestCase):
    def setUp(self):
        self.conn = mock.MagicMock()
        self.cursor = self.conn.cursor.return_value.__enter__.return_value

    def test_creates_missing_store_and_prize(self):
        self.cursor.fetchone.side_effect = [None, None]

        result = load_rows(self.conn, [InventoryRow("summer-2026", "Downtown", "Mug", 10)])

        self.assertEqual(result, (1, 0, 0))
        statements = [c.args[0] for c in self.cursor.execute.call_args_list]
        self.assertTrue(statements[1].startswith("INSERT INTO `prize_store`"))
        self.assertTrue(statements[3].startswith("INSERT INTO `prize_prize`"))
        self.assertEqual(self.cursor.execute.call_args_list[3].args[1][3:], (10, 10))
        self.conn.commit.assert_called_once_with()

    def test_existing_prize_is_skipped_unless_topping_up(self):
        row = InventoryRow("summer-2026", "Downtown", "Mug", 4)
        self.cursor.fetchone.side_effect = [("store-id",), ("prize-id",)]

        with mock.patch("sys.stderr", new_callable=io.StringIO):
            self.assertEqual(load_rows(self.conn, [row]), (0, 0, 1))

        self.cursor.fetchone.side_effect = [("store-id",), ("prize-id",)]
        self.assertEqual(load_rows(self.conn, [row], top_up=True), (0, 1, 0))
        update = self.cursor.execute.call_args_list[-1]
        self.assertTrue(update.args[0].startswith("UPDATE `prize_prize`"))
        self.assertEqual(update.args[1], (4, 4, "prize-id"))
