import re
from unittest.mock import patch

from spotix.utils import (
    format_naira,
    generate_reference,
    generate_referral_code,
    generate_ticket_id,
    to_minor_units,
)

TICKET_ID = re.compile(r"^SPTX-TX-[0-9A-Z]{10}$")


class TestTicketId:
    def test_format_holds_over_many_draws(self):
        for _ in range(10_000):
            ticket_id = generate_ticket_id()
            assert TICKET_ID.match(ticket_id), ticket_id

            body = ticket_id[len("SPTX-TX-"):]
            assert sum(ch.isdigit() for ch in body) == 8
            assert sum(ch.isalpha() for ch in body) == 2

    def test_second_letter_can_be_appended_at_end(self):
        with patch("spotix.utils.random.randrange", return_value=7), \
                patch("spotix.utils.random.randint", return_value=8):
            ticket_id = generate_ticket_id()

        body = ticket_id[len("SPTX-TX-"):]
        assert TICKET_ID.match(ticket_id)
        assert body[7].isalpha()
        assert body[8].isdigit()
        assert body[9].isalpha()

    def test_letters_can_lead(self):
        with patch("spotix.utils.random.randrange", return_value=0), \
                patch("spotix.utils.random.randint", return_value=1):
            body = generate_ticket_id()[len("SPTX-TX-"):]

        assert body[0].isalpha()
        assert body[1].isdigit()
        assert body[2].isalpha()


def test_payment_reference_format():
    assert re.match(r"^SPTX-REF-\d{17,}$", generate_reference())


def test_referral_code_strips_username():
    code = generate_referral_code("Ada.Obi_99")
    assert re.match(r"^adaobi99\d{4}$", code)


def test_money_helpers():
    assert to_minor_units("1500.50") == 150050
    assert to_minor_units(21.5) == 2150
    assert to_minor_units(0) == 0
    assert format_naira(215000) == "₦2,150.00"
