# models/renewal.py
from fitdesk.utils.membership import parse_date, to_iso


class RenewalRecord:
    """One row of the append-only `membership_renewals` log."""

    COLUMNS = ('id', 'client_id', 'client_name', 'membership_type',
               'new_end_date', 'renewal_date', 'price_paid')

    def __init__(self, id=None, client_id=None, client_name=None, membership_type=None,
                 new_end_date=None, renewal_date=None, price_paid=0):
        self.id = id
        self.client_id = client_id
        self.client_name = client_name
        self.membership_type = membership_type
        self.new_end_date = parse_date(new_end_date)
        self.renewal_date = parse_date(renewal_date)
        self.price_paid = float(price_paid or 0)

    @classmethod
    def from_row(cls, row):
        if row is None:
            return None
        keys = row.keys()
        return cls(**{k: row[k] for k in cls.COLUMNS if k in keys})

    def to_dict(self):
        return {
            'id': self.id,
            'clientId': self.client_id,
            'clientName': self.client_name,
            'membershipType': self.membership_type,
            'newEndDate': to_iso(self.new_end_date),
            'renewalDate': to_iso(self.renewal_date),
            'pricePaid': self.price_paid,
        }

    @staticmethod
    def total_revenue(records):
        return round(sum(r.price_paid for r in records), 2)

    def __repr__(self):
        return f"<RenewalRecord id={self.id} client_id={self.client_id} {self.membership_type}>"
