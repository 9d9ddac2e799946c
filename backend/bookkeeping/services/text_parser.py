"""
Free-text transaction entry

Turns dictated or typed bookkeeping notes such as
"今天收到房费300元，昨天支付水电费200元" into draft transactions.
Drafts are not saved; the client reviews them and posts each one to
/transactions.
"""

import logging
import re
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bookkeeping.core.transactions.models import InputMethod, TransactionType
from bookkeeping.repositories.base import Repository, Row, Table, eq
from bookkeeping.security.permissions import has_permission
from bookkeeping.services.cash_flow_config import INCOME_CATEGORY_MAPPING
from bookkeeping.services.errors import PermissionDeniedError, ValidationError
from bookkeeping.services.scope import require_company_id
from bookkeeping.services.transactions import classify

logger = logging.getLogger(__name__)

INCOME_KEYWORDS = ("收到", "收入", "入账", "进账", "房费", "押金")
EXPENSE_KEYWORDS = ("支付", "支出", "花费", "购买", "买了", "采购", "交了", "付了", "还款", "还贷")
TRANSACTION_KEYWORDS = INCOME_KEYWORDS + EXPENSE_KEYWORDS

# Built-in category -> words that point to it
CATEGORY_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "房费收入": ("房费", "住宿费", "客房费", "房租"),
    "押金收入": ("押金", "保证金"),
    "额外服务": ("服务费", "接送", "早餐"),
    "银行贷款": ("贷款", "借款"),
    "股东投资": ("股东投资", "投资款", "注资"),
    "水电费": ("水电", "水费", "电费", "燃气费", "网费"),
    "维修费": ("维修", "修理", "修缮"),
    "清洁费": ("清洁", "保洁", "打扫", "卫生"),
    "人工费": ("工资", "人工", "薪水"),
    "装修改造": ("装修", "改造"),
    "固定资产购置": ("固定资产", "购置设备"),
    "支付利息": ("利息",),
    "偿还贷款": ("还贷", "还款", "偿还"),
    "股东分红": ("分红", "股利"),
    "采购费": ("采购", "购买", "买了"),
}

DEFAULT_CATEGORY = {"income": "其他收入", "expense": "其他支出"}

RELATIVE_DAYS = (
    (("今天", "今日"), 0),
    (("昨天", "昨日"), -1),
    (("前天", "前日"), -2),
    (("明天", "明日"), 1),
)
DATE_KEYWORDS = tuple(word for words, _ in RELATIVE_DAYS for word in words)

CHINESE_DIGITS = {
    "零": 0, "一": 1, "二": 2, "两": 2, "俩": 2, "三": 3, "仨": 3, "四": 4,
    "五": 5, "六": 6, "七": 7, "八": 8, "九": 9,
}
CHINESE_UNITS = {"十": 10, "百": 100, "千": 1000, "万": 10000}
CHINESE_NUMERAL = "[零一二两俩三仨四五六七八九十百千万]+"

ARABIC_AMOUNT_PATTERNS = [re.compile(r"(\d+(?:\.\d+)?)\s*" + suffix) for suffix in ("元", "块", "圆", "钱")]
ARABIC_AMOUNT_PATTERNS.append(re.compile(r"(\d+(?:\.\d+)?)\s*$"))
CHINESE_AMOUNT_PATTERN = re.compile(f"({CHINESE_NUMERAL})\\s*[元块圆]")
AMOUNT_TEXT = re.compile(rf"(?:\d+(?:\.\d+)?|{CHINESE_NUMERAL})\s*[元块圆钱]")

FULL_DATE = re.compile(r"(\d{4})[-/](\d{1,2})[-/](\d{1,2})")
MONTH_DAY = re.compile(r"(\d{1,2})月(\d{1,2})[日号]")
CHINESE_MONTH_DAY = re.compile(r"([一二三四五六七八九十]+)月([一二三四五六七八九十]+)[日号]")
DAY_ONLY = re.compile(r"(\d{1,2})[日号]")
CHINESE_DAY_ONLY = re.compile(r"([一二三四五六七八九十]+)[日号]")
DATE_PATTERNS = (FULL_DATE, MONTH_DAY, CHINESE_MONTH_DAY, DAY_ONLY, CHINESE_DAY_ONLY)

SENTENCE_BREAKS = re.compile(r"[，。；,;、\n]")

# A date word starts a new entry when a transaction word follows within this many characters
DATE_LEAD_WINDOW = 10


def chinese_to_number(text: str) -> Optional[int]:
    """"三百五" style numerals (and plain digits) to int; None when nothing parses"""
    if not text:
        return None
    if text.isdigit():
        return int(text)

    total = section = digit = 0
    for char in text:
        if char in CHINESE_DIGITS:
            digit = CHINESE_DIGITS[char]
        elif char == "万":
            total += (section + digit) * 10000
            section = digit = 0
        elif char in CHINESE_UNITS:
            section += (digit or 1) * CHINESE_UNITS[char]
            digit = 0
    result = total + section + digit
    return result or None


def extract_amount(sentence: str) -> Optional[Decimal]:
    for pattern in ARABIC_AMOUNT_PATTERNS:
        match = pattern.search(sentence)
        if match:
            amount = Decimal(match.group(1))
            return amount if amount > 0 else None

    match = CHINESE_AMOUNT_PATTERN.search(sentence)
    if match:
        value = chinese_to_number(match.group(1))
        if value:
            return Decimal(value)
    return None


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def extract_date(sentence: str, today: date) -> Optional[date]:
    """
    Date mentioned in a sentence.

    Understands 今天/昨天/前天/明天, "3月5日", "三月五号", "15号" (current
    month) and "2026-03-05". Impossible dates such as 2月30日 are ignored.
    """
    for words, offset in RELATIVE_DAYS:
        if any(word in sentence for word in words):
            return today + timedelta(days=offset)

    match = FULL_DATE.search(sentence)
    if match:
        found = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        if found:
            return found

    match = MONTH_DAY.search(sentence)
    if match:
        found = _safe_date(today.year, int(match.group(1)), int(match.group(2)))
        if found:
            return found

    match = CHINESE_MONTH_DAY.search(sentence)
    if match:
        month, day = chinese_to_number(match.group(1)), chinese_to_number(match.group(2))
        found = _safe_date(today.year, month, day) if month and day else None
        if found:
            return found

    if "月" not in sentence:
        match = DAY_ONLY.search(sentence)
        found = _safe_date(today.year, today.month, int(match.group(1))) if match else None
        if found:
            return found
        match = CHINESE_DAY_ONLY.search(sentence)
        day = chinese_to_number(match.group(1)) if match else None
        found = _safe_date(today.year, today.month, day) if day else None
        if found:
            return found
    return None


def detect_type(sentence: str) -> Optional[str]:
    if any(word in sentence for word in INCOME_KEYWORDS):
        return TransactionType.INCOME.value
    if any(word in sentence for word in EXPENSE_KEYWORDS):
        return TransactionType.EXPENSE.value
    return None


def _category_type(name: str) -> str:
    return TransactionType.INCOME.value if name in INCOME_CATEGORY_MAPPING else TransactionType.EXPENSE.value


def detect_category(sentence: str, transaction_type: str, categories: Iterable[Row] = ()) -> str:
    """
    Category for a sentence.

    A company category named in the sentence wins (longest name first),
    then the built-in keyword table, then 其他收入/其他支出.
    """
    named = [
        c["name"] for c in categories
        if c.get("type") == transaction_type and c.get("name") and c["name"] in sentence
    ]
    if named:
        return max(named, key=len)

    for category, keywords in CATEGORY_KEYWORDS.items():
        if _category_type(category) != transaction_type:
            continue
        if any(word in sentence for word in keywords):
            return category
    return DEFAULT_CATEGORY[transaction_type]


def rate_confidence(sentence: str, category: str) -> str:
    """high or medium for a sentence that yielded a type and an amount"""
    # type keyword and a positive amount are both present
    score = 2
    if not category.startswith("其他"):
        score += 1
    if 5 <= len(sentence) <= 50:
        score += 1
    return "high" if score >= 3 else "medium"


def _positions(text: str, words: Iterable[str]) -> List[int]:
    return sorted({m.start() for word in words for m in re.finditer(re.escape(word), text)})


def _split_speech(text: str) -> List[str]:
    date_starts = [
        i for i in _positions(text, DATE_KEYWORDS)
        if any(0 <= text.find(word, i) - i < DATE_LEAD_WINDOW for word in TRANSACTION_KEYWORDS)
    ]
    keyword_starts = [
        i for i in _positions(text, TRANSACTION_KEYWORDS)
        if not any(0 <= i - d < DATE_LEAD_WINDOW for d in date_starts)
    ]

    parts = []
    start = 0
    for cut in sorted(set(date_starts + keyword_starts)):
        if cut > start and AMOUNT_TEXT.search(text[start:cut]):
            parts.append(text[start:cut].strip())
            start = cut
    parts.append(text[start:].strip())
    return [p for p in parts if p]


def split_sentences(text: str) -> List[str]:
    """
    Break text into one candidate entry per sentence.

    Punctuation splits first. Unpunctuated speech is then cut before a date
    word that leads into a transaction word, or else before a transaction
    word, but only once the current piece already holds an amount.
    """
    sentences = []
    for piece in SENTENCE_BREAKS.split(text):
        piece = piece.strip()
        if piece:
            sentences.extend(_split_speech(piece))
    return sentences


def _describe(sentence: str, category: str, amount: Decimal) -> str:
    description = AMOUNT_TEXT.sub("", sentence)
    for pattern in DATE_PATTERNS:
        description = pattern.sub("", description)
    for word in DATE_KEYWORDS + TRANSACTION_KEYWORDS:
        description = description.replace(word, "")
    description = description.strip()
    return description or f"{category}{amount:f}元"


def parse_sentence(sentence: str, today: date, categories: Iterable[Row] = ()) -> Optional[Dict[str, Any]]:
    """Draft for one sentence, or None without an amount or a type keyword"""
    amount = extract_amount(sentence)
    if amount is None:
        return None
    transaction_type = detect_type(sentence)
    if transaction_type is None:
        return None

    category = detect_category(sentence, transaction_type, categories)
    return {
        "type": transaction_type,
        "category": category,
        "amount": amount,
        "description": _describe(sentence, category, amount),
        "date": (extract_date(sentence, today) or today).isoformat(),
        "confidence": rate_confidence(sentence, category),
        "source_text": sentence,
    }


def parse_text(text: str, today: Optional[date] = None, categories: Iterable[Row] = ()) -> List[Dict[str, Any]]:
    """All drafts found in a block of text (sentences without one are skipped)"""
    if not text or not text.strip():
        return []
    today = today or date.today()
    categories = list(categories)
    drafts = []
    for sentence in split_sentences(text.strip()):
        draft = parse_sentence(sentence, today, categories)
        if draft is not None:
            drafts.append(draft)
    return drafts


def parse_transactions(
    repo: Repository,
    profile: Row,
    text: str,
    input_method: str = InputMethod.TEXT.value,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    """
    Draft transactions for the caller's company.

    Each draft carries the classification it would be saved with.

    Raises:
        ValidationError: Empty text, or nothing recognizable in it
        PermissionDeniedError: If the caller cannot record transactions
    """
    company_id = require_company_id(profile)
    if not has_permission(profile, "can_create"):
        raise PermissionDeniedError("无权录入交易")
    if not text or not text.strip():
        raise ValidationError("请输入要解析的文本")
    try:
        input_method = InputMethod(input_method).value
    except ValueError:
        raise ValidationError("录入方式无效")

    categories = repo.find(Table.CATEGORIES, [eq("company_id", company_id)])
    sentences = split_sentences(text.strip())
    drafts = parse_text(text, today=today, categories=categories)
    if not drafts:
        raise ValidationError("未能解析出有效的交易记录")

    for draft in drafts:
        draft["input_method"] = input_method
        draft.update(classify(repo, company_id, draft["category"], draft["type"]))

    logger.info(
        "Parsed transaction text",
        extra={"company_id": company_id, "parsed": len(drafts), "total": len(sentences)},
    )
    return {"transactions": drafts, "parsed": len(drafts), "total": len(sentences)}
