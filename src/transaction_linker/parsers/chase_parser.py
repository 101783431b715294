"""Chase credit card CSV parser.

Chase exports look like:
    Transaction Date,Post Date,Description,Category,Type,Amount,Memo

Purchases are negative and payments/refunds positive, the reverse of most
bank exports, so a positive amount is treated as money in.
"""

from transaction_linker.parsers.csv_parser import CSVParser

CHASE_COLUMNS: dict[str, tuple[str, ...]] = {
    "date": ("transaction date",),
    "description": ("description",),
    "amount": ("amount",),
    "category": ("category",),
}


class ChaseParser(CSVParser):
    """Parser for Chase credit card exports."""

    column_aliases = CHASE_COLUMNS
    required_labels = {
        "date": "Transaction Date",
        "description": "Description",
        "amount": "Amount",
    }
    negative_is_income = False
    merchant_from_description = True

    def can_parse(self, headers: list[str]) -> bool:
        """Check for the Chase Transaction Date, Description and Amount headers."""
        mapping = self.find_columns(headers)
        return (
            mapping.date_col is not None
            and mapping.description_col is not None
            and mapping.amount_col is not None
        )
