from sealvault.ledger.sui import SuiLedgerReader

__all__ = ["SuiLedgerReader"]
