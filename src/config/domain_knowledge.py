"""Static domain vocabulary for query expansion and reranking.

The knowledge base is built for market and company research, so the tables
below are biased towards financial language in both Chinese and English.
Query rewriting uses them to produce recall-oriented variants
("股票分析" -> "证券分析", "AAPL fundamentals"); the reranker uses them to
weight tokens and to estimate how fresh a snippet is.

Every table is plain data.  ``config/config.yaml`` may replace any of them
through its ``query_rewrite:`` and ``reranker:`` sections, see
:meth:`QueryRewriteRules.from_config` and :meth:`RerankerConfig.from_config`.
"""

from __future__ import annotations


# ═════════════════════════════════════════════════════════════════════════
# 1. QUERY REWRITE: SYNONYMS
# ═════════════════════════════════════════════════════════════════════════
# term -> replacements.  Matching is case-insensitive; every replacement
# yields one variant of the whole query.  Insertion order is priority order.

SYNONYMS: dict[str, list[str]] = {
    # core market vocabulary
    "股票": ["证券", "股份", "股权", "个股", "股价"],
    "价格": ["股价", "价值", "估值", "报价"],
    "上涨": ["涨幅", "增长", "攀升", "走高", "上升"],
    "下跌": ["跌幅", "下降", "回落", "走低", "下滑"],
    "财报": ["年报", "季报", "业绩", "财务报告", "财务数据"],
    "收益": ["利润", "盈利", "净利", "净利润"],
    "营收": ["收入", "营业收入", "营业额"],
    "市场": ["股市", "A股", "港股", "美股", "证券市场"],
    "分析": ["研究", "评价", "评估", "解读"],
    "投资": ["持仓", "配置", "买入", "建仓"],
    "风险": ["波动", "不确定性", "风险点", "隐患"],
    "趋势": ["走势", "方向", "态势", "发展"],
    # sectors
    "AI": ["人工智能", "机器学习", "深度学习"],
    "新能源": ["电动车", "新能车", "锂电", "光伏", "风电"],
    "芯片": ["半导体", "集成电路", "处理器"],
    "医药": ["生物医药", "制药", "医疗"],
    "房地产": ["地产", "房产"],
    # macro
    "降息": ["货币宽松", "降准"],
    "加息": ["货币紧缩", "加息周期"],
    "通胀": ["通货膨胀", "CPI上升"],
    "GDP": ["经济增长", "国内生产总值"],
    # English
    "stock": ["equity", "shares"],
    "earnings": ["profit", "net income"],
    "revenue": ["sales", "turnover"],
    "outlook": ["guidance", "forecast"],
}


# ═════════════════════════════════════════════════════════════════════════
# 2. QUERY REWRITE: QUALIFIERS
# ═════════════════════════════════════════════════════════════════════════
# Appended to the normalized query ("<query> <qualifier>") in table order.

ANALYSIS_DIMENSIONS: list[str] = [
    "基本面", "技术面", "消息面", "估值", "风险", "催化剂", "政策面",
]

TIME_FRAMES: list[str] = [
    "最新", "近一个月", "近三个月", "近半年", "近一年", "历史",
]

INFO_TYPES: list[str] = [
    "数据", "指标", "新闻", "公告", "研报", "财报", "分析",
]

# Dropped from the query when producing the compact variant.  Whole
# whitespace/punctuation-delimited words only.
REWRITE_STOP_WORDS: set[str] = {
    "的", "了", "呢", "吗", "啊", "吧", "和", "与", "或", "但", "是", "在",
}


# ═════════════════════════════════════════════════════════════════════════
# 3. RERANKER: TOKEN WEIGHTS
# ═════════════════════════════════════════════════════════════════════════
# Bonus weight of a token in the relevance score; unlisted tokens weigh 1.0.

KEYWORD_BONUSES: dict[str, float] = {
    # instruments and core terms
    "股票": 2.0, "债券": 2.0, "基金": 2.0, "期货": 2.0, "期权": 2.0,
    "外汇": 2.0, "股价": 2.0, "市值": 2.0, "涨跌": 2.0, "收益": 2.0,
    "风险": 2.0, "投资": 2.0, "融资": 2.0, "上市": 2.0, "ipo": 2.0,
    "并购": 2.0, "重组": 2.0,
    # ratios and statements
    "pe": 1.8, "pb": 1.8, "roe": 1.8, "roa": 1.8, "eps": 1.8,
    "净利润": 1.8, "营收": 1.8, "毛利率": 1.8, "负债率": 1.8,
    "市盈率": 1.8, "市净率": 1.8, "现金流": 1.8, "分红": 1.8,
    "股息": 1.8, "估值": 1.8,
    # market moves
    "牛市": 1.5, "熊市": 1.5, "涨停": 1.5, "跌停": 1.5, "成交量": 1.5,
    "换手率": 1.5, "振幅": 1.5, "均线": 1.5, "支撑": 1.5, "阻力": 1.5,
    "突破": 1.5, "回调": 1.5, "反弹": 1.5, "趋势": 1.5,
    # sectors
    "银行": 1.3, "保险": 1.3, "证券": 1.3, "房地产": 1.3, "科技": 1.3,
    "医药": 1.3, "消费": 1.3, "制造": 1.3, "新能源": 1.3, "芯片": 1.3,
    "5g": 1.3, "人工智能": 1.3, "区块链": 1.3,
}


# ═════════════════════════════════════════════════════════════════════════
# 4. RERANKER: FRESHNESS
# ═════════════════════════════════════════════════════════════════════════
# First keyword found in the lowercased text decides the freshness score
# when the link carries no date.  Table order is match order.

TIME_KEYWORDS: dict[str, float] = {
    "今日": 1.0, "今天": 1.0, "本周": 1.0, "本月": 1.0, "最新": 1.0,
    "刚刚": 1.0, "实时": 1.0,
    "昨日": 0.8, "昨天": 0.8, "上周": 0.8, "近期": 0.8, "最近": 0.8,
    "去年": 0.3, "前年": 0.3, "历史": 0.3, "过去": 0.3,
}

# Age in whole years (current year minus the year in the link) -> score.
# Ages above the largest key score FRESHNESS_FLOOR.
AGE_SCORES: dict[int, float] = {0: 1.0, 1: 0.9, 2: 0.7, 3: 0.5, 4: 0.3, 5: 0.3}
FRESHNESS_FLOOR: float = 0.1
FRESHNESS_UNKNOWN: float = 0.5

# Date patterns in links.  Group 1 is always the four-digit year.
LINK_DATE_PATTERNS: list[str] = [
    r"/(\d{4})/(\d{1,2})/(\d{1,2})",
    r"/(\d{4})-(\d{1,2})-(\d{1,2})",
    r"/(\d{4})(\d{2})(\d{2})",
    r"(\d{4})年(\d{1,2})月(\d{1,2})日",
]


# ═════════════════════════════════════════════════════════════════════════
# 5. RERANKER: STOP WORDS
# ═════════════════════════════════════════════════════════════════════════

RERANK_STOP_WORDS: set[str] = {
    # Chinese
    "的", "了", "在", "是", "我", "有", "和", "就", "不", "人", "都", "一",
    "一个", "上", "也", "很", "到", "说", "要", "去", "你", "会", "着",
    "没有", "看", "好", "自己", "这",
    # English
    "a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "up", "about", "into", "through", "during",
    "before", "after", "above", "below", "between",
}
