"""
Currency Model

Currencies are a closed set. Every amount in the ledger is tagged with one
of these codes, and the converter's seed table covers all of them.
"""

from enum import Enum


class Currency(str, Enum):
    """ISO 4217 codes supported by the ledger."""
    PHP = "PHP"
    USD = "USD"
    GBP = "GBP"
    EUR = "EUR"
    CAD = "CAD"
    JPY = "JPY"
    AUD = "AUD"
    BRL = "BRL"
    SGD = "SGD"
    ZAR = "ZAR"
    CNY = "CNY"
    INR = "INR"
    KRW = "KRW"
    MXN = "MXN"
    CHF = "CHF"
    NOK = "NOK"
    SEK = "SEK"
    DKK = "DKK"
    HKD = "HKD"
    NZD = "NZD"
    THB = "THB"
    MYR = "MYR"
    IDR = "IDR"
    VND = "VND"
    RUB = "RUB"
    PLN = "PLN"
    CZK = "CZK"
    HUF = "HUF"
    TRY = "TRY"
    AED = "AED"

    @property
    def symbol(self) -> str:
        """Display symbol used by the amount formatter."""
        return _SYMBOLS[self]

    @property
    def display_name(self) -> str:
        return f"{self.symbol} - {self.value}"


_SYMBOLS = {
    Currency.PHP: "₱",
    Currency.USD: "$",
    Currency.CAD: "$",
    Currency.AUD: "$",
    Currency.SGD: "$",
    Currency.HKD: "$",
    Currency.NZD: "$",
    Currency.MXN: "$",
    Currency.GBP: "£",
    Currency.EUR: "€",
    Currency.JPY: "¥",
    Currency.CNY: "¥",
    Currency.BRL: "R$",
    Currency.ZAR: "R",
    Currency.INR: "₹",
    Currency.KRW: "₩",
    Currency.CHF: "CHF",
    Currency.NOK: "kr",
    Currency.SEK: "kr",
    Currency.DKK: "kr",
    Currency.THB: "฿",
    Currency.MYR: "RM",
    Currency.IDR: "Rp",
    Currency.VND: "₫",
    Currency.RUB: "₽",
    Currency.PLN: "zł",
    Currency.CZK: "Kč",
    Currency.HUF: "Ft",
    Currency.TRY: "₺",
    Currency.AED: "د.إ",
}
