"""
Rule tables for the inbox transaction importer.

Everything in here is data: weighted regex tables for the scoring
classifier, promotional filter lists, the known-merchant map and the Gmail
search query catalogue. Tables are tuples of frozen dataclasses so they can
be shared across threads and swapped wholesale in tests.

All body patterns assume the text has already been through
``core.content.normalize_text``, i.e. every currency marker is ``₹``.
"""

import re
from dataclasses import dataclass

_I = re.IGNORECASE


@dataclass(frozen=True)
class WeightedPattern:
    """A regex and the score it contributes when it matches (may be negative)."""

    pattern: re.Pattern
    weight: int

    def score(self, text: str) -> int:
        return self.weight if self.pattern.search(text) else 0


def _rules(*pairs: tuple[str, int]) -> tuple[WeightedPattern, ...]:
    return tuple(WeightedPattern(re.compile(p, _I), w) for p, w in pairs)


def _compile(*patterns: str, flags: int = _I) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(p, flags) for p in patterns)


# ---------------------------------------------------------------------------
# Expense (debit) signals
# ---------------------------------------------------------------------------

EXPENSE_SUBJECT_RULES = _rules(
    (r"\border\b.{0,15}\b(confirmed|placed|successful|received)\b", 8),
    (r"\bpayment\b.{0,15}\b(confirmed|successful|received|done|complete)\b", 8),
    (r"\b(purchase|booking)\b.{0,15}\b(confirmed|successful|placed)\b", 8),
    (r"\bthank you for (your )?(order|purchase|payment|shopping)\b", 8),
    (r"\binvoice\b.{0,20}\b(for|from|generated|attached)\b", 7),
    (r"\b(receipt|bill)\b.{0,15}\b(for|from|generated)\b", 7),
    (r"\bpurchase\s*confirmation\b", 9),
    (r"\bticket.{0,10}(confirmed|booked|booking confirmed)\b", 8),
    (r"\bbooking.{0,10}confirmed\b", 8),
    (r"\bamount\s*debited\b", 9),
    (r"\bpayment\s*debited\b", 9),
    (r"\btransaction\b.{0,15}\b(successful|confirmed|complete)\b", 7),
    (r"\bsubscription\b.{0,20}\b(confirmed|activated|renewed|started)\b", 7),
    (r"\b(order|trip|ride|purchase)\s*(receipt|summary|details|invoice)\b", 8),
    (r"\bconfirmed[!.]?\s*$", 5),
    (r"\byour\b.{0,20}\border\b.{0,30}\bfrom\b", 8),
    (r"\byour\b.{0,30}\border\s*$", 6),
    (r"^order\b.{0,5}\bfrom\b", 6),
    (r"\bdebit\s*(alert|notification|intimation)\b", 8),
    (r"\ba/c\b.{0,30}\bdebited\b", 9),
    (r"\baccount\b.{0,20}\bdebited\b", 9),
    (r"\btxn\b.{0,20}\b(of|for)\b.{0,10}(inr|rs)", 8),
    (r"\b(inr|rs\.?)\s*[\d,]+.{0,20}\bdebited\b", 9),
)

EXPENSE_BODY_RULES = _rules(
    (r"payment\s*(?:of\s*)?₹\s*[\d,]+\s*(?:was|has been|is)\s*(?:successful|confirmed|received|processed)", 10),
    (r"₹\s*[\d,]+\s*(?:was|has been)\s*debited", 10),
    (r"amount\s*(?:of\s*)?₹\s*[\d,]+\s*(?:debited|charged|paid)", 10),
    (r"(?:order|grand|invoice)\s*total\s*[:\-]?\s*₹\s*[\d,]+", 9),
    (r"total\s*(?:amount\s*)?(?:paid|charged|billed)\s*[:\-]?\s*₹\s*[\d,]+", 9),
    (r"total\s*paid\s*[-:\s]\s*₹\s*[\d,]+", 10),
    (r"amount\s*[:\-]\s*₹\s*[\d,]+", 7),
    (r"you\s*(?:have\s*)?(?:paid|spent)\s*₹\s*[\d,]+", 8),
    (r"charged\s*(?:to\s*your)?.{0,30}₹\s*[\d,]+", 8),
    (r"thank you for (your )?(order|purchase|payment|shopping)", 7),
    (r"your\s*(?:order|booking|purchase)\b.{0,30}\b(?:confirmed|placed|successful)", 7),
    (r"(?:order|booking)\s*(?:id|no|number|#)\s*[:\-]?\s*[A-Z0-9]", 5),
    (r"invoice\s*(?:no|number|#)?.{0,20}₹\s*[\d,]+", 7),
    (r"billed\s*(?:amount\s*)?[:\-]?\s*₹\s*[\d,]+", 8),
    (r"total\s*[:\-]?\s*₹\s*[\d,]+", 7),
    (r"₹\s*[\d,]+\s*(?:only|paid|total)", 6),
    (r"thank you for ordering from", 7),
    (r"(?:debited|deducted)\s*(?:from\s*(?:your\s*)?(?:a/c|account))?.{0,30}₹\s*[\d,]+", 9),
    (r"₹\s*[\d,]+\s*(?:debited|deducted)\s*from", 9),
    # credit-event language cancels the expense signal
    (r"refund(?:ed)?\s*(?:of\s*)?₹", -10),
    (r"has been refunded|refund processed|refund initiated", -10),
    (r"credited back to your", -8),
    (r"cashback\s*(?:of\s*)?₹.{0,20}(?:credited|added)", -8),
)


# ---------------------------------------------------------------------------
# Refund signals
# ---------------------------------------------------------------------------

REFUND_SUBJECT_RULES = _rules(
    (r"\brefund(ed)?\b", 5),
    (r"\bmoney.?back\b", 5),
    (r"\brefund\b.{0,20}\b(processed|initiated|successful)\b", 8),
    (r"\bamount\b.{0,15}\b(refunded|credited back)\b", 8),
    (r"\b(order|booking)\b.{0,10}\bcancell(ed|ation)\b", 4),
    (r"\breturn\b.{0,15}\b(processed|accepted|approved)\b", 7),
    (r"\bcancellation\b.{0,15}\b(confirmed|successful)\b", 6),
    (r"\bcredit.?note\b", 6),
    (r"\breimburse(ment|d)?\b", 6),
    (r"\breversal\b", 5),
)

REFUND_BODY_RULES = _rules(
    (r"refund of\s*₹\s*[\d,]+", 10),
    (r"₹\s*[\d,]+\s*(?:has been|will be)\s*refunded", 10),
    (r"refund\s*(?:of\s*)?₹\s*[\d,]+\s*(?:has been|is)\s*(?:processed|initiated|credited)", 10),
    (r"your refund (?:of|for|amounting)", 9),
    (r"we.?ve (processed|initiated) (your )?refund", 9),
    (r"refund\s*(?:has been\s*)?successfully\s*(processed|initiated|credited)", 9),
    (r"amount.{0,20}refunded.{0,30}(?:bank|account|wallet|upi)", 8),
    (r"credited back to your\s*(?:bank|account|card|wallet)", 8),
    (r"will be (?:credited|refunded).{0,40}(?:\d+.?\d*)\s*(?:working|business)?\s*days", 8),
    (r"return.{0,30}refund.{0,30}₹", 7),
    (r"cancell(?:ed|ation).{0,40}₹.{0,40}refund", 7),
    (r"refund.{0,30}(?:neft|imps|upi|wallet)", 7),
    (r"your order.{0,30}cancell", 4),
    # purchase language quoted inside a refund mail
    (r"payment (?:successful|confirmed|received)", -8),
    (r"order (?:placed|confirmed|received)", -8),
    (r"thank you for your (?:purchase|payment|order)", -7),
    (r"₹\s*[\d,]+\s*(?:was|has been)\s*debited", -10),
    (r"amount debited", -9),
)


# ---------------------------------------------------------------------------
# Cashback / reward signals
# ---------------------------------------------------------------------------

CASHBACK_SUBJECT_RULES = _rules(
    (r"\bcashback\b.{0,15}\b(credited|added|received)\b", 8),
    (r"\bcash back\b.{0,15}\b(credited|added)\b", 8),
    (r"\breward(s)?\b.{0,15}\b(credited|added|earned)\b", 7),
    (r"\bsupercoins?\b.{0,15}\b(added|credited)\b", 8),
    (r"\bwallet\b.{0,10}\bcredit\b", 6),
    (r"\bpoints?\b.{0,15}\b(credited|added)\b", 6),
)

CASHBACK_BODY_RULES = _rules(
    (r"cashback of\s*₹\s*[\d,]+.{0,20}(?:credited|added)", 10),
    (r"₹\s*[\d,]+\s*cashback\s*(?:has been|is)\s*(?:credited|added)", 10),
    (r"we.?ve added\s*₹\s*[\d,]+.{0,20}(?:cashback|reward)", 9),
    (r"your (cashback|reward|supercoins?).{0,30}₹\s*[\d,]+.{0,20}(?:credited|added)", 9),
    (r"₹\s*[\d,]+\s*(?:supercoins?|coins?|points?).{0,20}(?:credited|added)", 8),
    (r"cashback.{0,30}credited.{0,20}(?:wallet|account|paytm|phonepe|gpay)", 8),
    (r"you.?ve earned\s*₹\s*[\d,]+\s*cashback", 9),
    (r"earn.*cashback.*next|cashback on your next", -8),
    (r"up to\s*₹\s*[\d,]+\s*cashback", -7),
    (r"payment (?:successful|confirmed)", -6),
)


# ---------------------------------------------------------------------------
# Amount anchors (where the authoritative amount usually sits)
# ---------------------------------------------------------------------------

AMOUNT_ANCHORS = {
    # the optional prefix lets bare "total" match, inside "Subtotal" too;
    # expense takes the largest pooled amount, so the grand total still wins
    "expense": re.compile(
        r"total\s*paid|(?:order|grand|invoice|bill)?\s*total"
        r"|amount\s*(?:paid|charged|billed|debited)|you\s*(?:paid|spent)"
        r"|payment\s*(?:of|amount)|grand\s*total",
        _I,
    ),
    "refund": re.compile(
        r"refund(?:ed)?(?:\s+of)?|credited back|has been credited|will be credited"
        r"|reversal|reimburs",
        _I,
    ),
    "cashback": re.compile(
        r"cashback(?:\s+of)?|cash back(?:\s+of)?|coins?\s*(?:added|credited)"
        r"|reward(?:s)?\s*credited",
        _I,
    ),
}


# ---------------------------------------------------------------------------
# Promotional filter lists
# ---------------------------------------------------------------------------

SKIP_SUBJECT_PATTERNS = _compile(
    r"\b(shipped|dispatched|out for delivery|arriving|on its way)\b",
    r"\b(password reset|verify your email|otp|security code|two.factor)\b",
    r"\b(welcome to|confirm your email|activate your account|email verification)\b",
    r"\b(survey|rate your experience|how was your (order|ride|experience))\b",
    r"\b(track your order|shipment update|delivery update|package update)\b",
)

PROMO_SUBJECT_PATTERNS = _compile(
    r"\bup to\s*\d+%\s*(off|discount|cashback)\b",
    r"\bearn\b.{0,20}\bcashback\b.{0,30}\b(next|every|when)\b",
    r"\bget\b.{0,15}\b\d+%\s*(off|discount)\b",
    r"\b(mega|big|flash|end of season)\s*sale\b",
    r"\b(last chance|don.?t miss|ends tonight|ends today)\b",
    r"\buse code\s+[A-Z0-9]{3,}\b",
    r"\b(new arrival|just launched|back in stock)\b",
    r"\b(referral bonus|refer a friend|invite friends)\b",
    r"\bnewsletter\b|\bunsubscribe\b",
)

PROMO_SENDER_PATTERNS = _compile(
    r"\b(offers?|deals?|newsletter|marketing|campaign|promotions?)\b[^@]*@",
    r"@[^>]*\b(offers?|deals?|newsletter|marketing|campaign)\b",
)

STRONG_PROMO_BODY_PATTERNS = _compile(
    r"earn\s*(?:up to\s*)?₹\s*[\d,]+\s*cashback\s*on\s*(your\s*next|every)",
    r"get\s*(?:up to\s*)?₹\s*[\d,]+\s*(cashback|off|discount)\s*on\s*(your\s*next|every)",
    r"use\s*code\s+[A-Z0-9]{3,}\s+to\s+(?:get|avail)",
)

STRONG_TX_BODY_PATTERNS = _compile(
    r"payment\s*(?:of\s*)?₹\s*[\d,]+\s*(?:successful|confirmed|received|debited)",
    r"₹\s*[\d,]+\s*(?:was|has been)\s*debited",
    r"your\s*(?:order|booking)\b.{0,30}\b(?:confirmed|placed)",
    r"refund\s*(?:of\s*)?₹\s*[\d,]+\s*(?:has been|will be)\s*(?:processed|credited)",
    r"cashback\s*of\s*₹\s*[\d,]+\s*(?:has been|is)\s*(?:credited|added)",
)


# ---------------------------------------------------------------------------
# Order / reference identifiers, highest priority first
# ---------------------------------------------------------------------------

ORDER_ID_PATTERNS = (
    re.compile(r"\b(?:order|booking)\s*(?:id|no\.?|number|#)\s*[:\-#]?\s*([A-Z0-9_\-/]{5,30})", _I),
    re.compile(r"\binvoice\s*(?:id|no\.?|number|#)\s*[:\-]?\s*([A-Z0-9_\-/]{5,30})", _I),
    re.compile(r"\btransaction\s*(?:id|no\.?|number|#)\s*[:\-]?\s*([A-Z0-9_\-/]{6,30})", _I),
    re.compile(r"\brefund\s*(?:id|no\.?|number|#)\s*[:\-]?\s*([A-Z0-9_\-/]{5,30})", _I),
    re.compile(r"\breference\s*(?:id|no\.?|number|#)?\s*[:\-]?\s*([A-Z0-9_\-]{6,30})", _I),
    re.compile(r"\bpnr\s*[:\-]?\s*([A-Z0-9]{6,15})", _I),
    re.compile(r"\bupi\s*ref\s*(?:no\.?)?\s*[:\-]?\s*(\d{10,})", _I),
    # bare "#ABC123"; case-sensitive so "#order" style hashtags are ignored
    re.compile(r"#([A-Z0-9_\-]{6,30})\b"),
)


# ---------------------------------------------------------------------------
# Merchant resolution
# ---------------------------------------------------------------------------

KNOWN_MERCHANTS = {
    "amazon": "Amazon", "flipkart": "Flipkart", "myntra": "Myntra", "ajio": "AJIO",
    "nykaa": "Nykaa", "meesho": "Meesho", "snapdeal": "Snapdeal", "tatacliq": "Tata CLiQ",
    "swiggy": "Swiggy", "zomato": "Zomato", "blinkit": "Blinkit", "zepto": "Zepto",
    "bigbasket": "BigBasket", "dunzo": "Dunzo", "instamart": "Instamart",
    "paytm": "Paytm", "phonepe": "PhonePe", "gpay": "Google Pay",
    "razorpay": "Razorpay", "cashfree": "Cashfree", "juspay": "Juspay",
    "makemytrip": "MakeMyTrip", "goibibo": "Goibibo", "cleartrip": "Cleartrip",
    "easemytrip": "EaseMyTrip", "redbus": "redBus", "indigo": "IndiGo", "airindia": "Air India",
    "airtel": "Airtel", "jio": "Jio", "vodafone": "Vodafone Vi", "bsnl": "BSNL",
    "irctc": "IRCTC", "ola": "Ola", "uber": "Uber", "rapido": "Rapido",
    "cred": "CRED", "slice": "Slice", "simpl": "Simpl", "lazypay": "LazyPay",
    "hdfc": "HDFC Bank", "icici": "ICICI Bank", "sbi": "SBI", "axis": "Axis Bank",
    "kotak": "Kotak Bank", "idfcfirst": "IDFC First", "payu": "PayU",
    "netflix": "Netflix", "spotify": "Spotify", "hotstar": "Hotstar",
    "bookmyshow": "BookMyShow", "swipe": "Swipe", "ixigo": "ixigo",
}

# Role words trailing a display name: "Swiggy Support", "Zomato Orders"
SENDER_ROLE_SUFFIX = re.compile(
    r"\s*(support|team|no.?reply|noreply|notifications?|alerts?|orders?|info|help"
    r"|care|service|billing|invoice|payments?|customer)\s*$",
    _I,
)

SENDER_SUBDOMAIN_PREFIX = re.compile(
    r"^(mail|mailer|email|info|support|noreply|no-reply|notifications?|orders?"
    r"|payments?|alerts?|team|accounts?|customer|do-not-reply|billing|transact|connect)\.",
    _I,
)

COMMON_TLDS = frozenset(
    {"com", "co", "in", "net", "org", "io", "app", "ai", "biz", "gov", "edu"}
)


# ---------------------------------------------------------------------------
# Gmail search catalogue, grouped by the signal each query targets
# ---------------------------------------------------------------------------

SEARCH_QUERIES = {
    "confirmations": (
        "subject:(confirmed) subject:(order OR booking OR payment OR purchase)",
        'subject:("payment successful" OR "payment confirmed" OR "payment received")',
        'subject:("amount debited" OR "payment debited" OR "transaction successful")',
        "subject:(invoice OR receipt) (₹ OR rs OR inr OR rupee)",
        'subject:("thank you for your order" OR "purchase confirmation" OR "order placed")',
        'subject:("ticket confirmed" OR "booking confirmed" OR "trip receipt")',
        'subject:("subscription confirmed" OR "subscription renewed" OR "membership")',
    ),
    "food_delivery": (
        'subject:("your order from") from:(zomato.com OR swiggy.com)',
        'subject:("your zomato order" OR "your swiggy order" OR "your blinkit order")',
        'subject:("your order") from:(zomato.com OR swiggy.com OR blinkit.com OR zepto.in OR bigbasket.com)',
    ),
    "debit_alerts": (
        'subject:("debit alert" OR "debited" OR "debit intimation")',
        'subject:(txn OR transaction) (debited OR inr OR "a/c")',
    ),
    "refunds": (
        'subject:(refund OR refunded OR "refund processed" OR "refund initiated")',
        'subject:("money back" OR "cancellation confirmed" OR "order cancelled" OR "return processed")',
        'subject:("amount credited" OR "amount refunded" OR "credit note" OR reversal)',
        '"your refund" (processed OR initiated OR credited)',
    ),
    "cashback": (
        'subject:("cashback credited" OR "cashback added" OR "cash back credited")',
        'subject:("reward credited" OR "supercoins added" OR "wallet credit" OR "points credited")',
    ),
}


def all_search_queries() -> tuple[str, ...]:
    """Flatten the catalogue, keeping group order."""
    return tuple(q for group in SEARCH_QUERIES.values() for q in group)
