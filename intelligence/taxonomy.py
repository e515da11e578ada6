"""Static keyword taxonomy used to turn quiz answers into search terms.

All tables are read-only (MappingProxyType of tuples) and loaded once at
import. Keys match the option labels offered by the onboarding quiz; lookups
for anything else fall back to the user's own text (see analyzer.py).

Keyword order matters: the query builder takes the first N terms of each list
when composing queries, so the most distinctive terms come first.
"""

from types import MappingProxyType

INDUSTRY_KEYWORDS = MappingProxyType({
    "Technology": (
        "artificial intelligence", "AI regulation", "data privacy", "cybersecurity",
        "tech policy", "digital rights", "platform regulation", "cloud computing",
        "semiconductor", "software regulation", "tech earnings", "startup funding",
    ),
    "Healthcare": (
        "healthcare policy", "FDA approval", "drug pricing", "medical regulation",
        "health insurance", "Medicare", "Medicaid", "pharmaceutical",
        "biotech", "telemedicine", "health data privacy", "medical devices",
    ),
    "Finance": (
        "financial regulation", "banking policy", "interest rates", "Federal Reserve",
        "cryptocurrency regulation", "fintech", "securities law", "tax policy",
        "inflation", "monetary policy", "banking sector", "financial services",
    ),
    "Education": (
        "education policy", "student loans", "higher education", "school funding",
        "education reform", "student debt", "university policy", "academic freedom",
        "education technology", "school choice", "teacher policy",
    ),
    "Energy": (
        "energy policy", "renewable energy", "oil prices", "climate change",
        "carbon tax", "green energy", "fossil fuels", "nuclear energy",
        "solar power", "wind energy", "energy regulation", "utilities",
    ),
    "Real Estate": (
        "housing policy", "mortgage rates", "property taxes", "zoning laws",
        "real estate market", "housing crisis", "rental market", "construction",
        "urban planning", "affordable housing", "property law",
    ),
})

POLICY_KEYWORDS = MappingProxyType({
    "Climate Policy": (
        "climate change", "carbon emissions", "Paris Agreement", "green deal",
        "renewable energy", "environmental regulation", "carbon tax",
        "climate action", "sustainability", "clean energy",
    ),
    "Economic Policy": (
        "economic policy", "fiscal policy", "GDP growth", "unemployment",
        "inflation", "trade policy", "tariffs", "economic stimulus",
        "federal budget", "tax reform", "monetary policy",
    ),
    "Foreign Relations": (
        "foreign policy", "international relations", "diplomacy", "trade war",
        "sanctions", "NATO", "UN Security Council", "bilateral relations",
        "embassy", "international law", "global politics",
    ),
    "Technology Regulation": (
        "tech regulation", "data privacy", "antitrust", "platform liability",
        "AI governance", "digital rights", "cybersecurity policy",
        "internet regulation", "social media regulation",
    ),
    "Healthcare": (
        "healthcare reform", "public health", "drug pricing", "health insurance",
        "medical regulation", "pandemic response", "vaccine policy",
        "mental health policy", "Medicare for All",
    ),
    "Education": (
        "education policy", "student debt", "school choice", "federal funding",
        "higher education", "teacher policy", "academic freedom",
        "education reform", "school vouchers",
    ),
    "Immigration": (
        "immigration policy", "border security", "asylum policy", "visa policy",
        "refugee policy", "immigration reform", "deportation", "green card",
        "citizenship policy", "border wall",
    ),
    "Defense": (
        "defense policy", "military budget", "national security", "defense spending",
        "arms control", "military strategy", "veteran affairs",
        "defense contracts", "homeland security",
    ),
})

REGION_KEYWORDS = MappingProxyType({
    "North America": (
        "United States", "Canada", "Mexico", "NAFTA", "USMCA", "US-Canada", "US-Mexico",
    ),
    "Europe": (
        "European Union", "Brexit", "EU regulation", "European Parliament",
        "Germany", "France", "UK",
    ),
    "Asia-Pacific": (
        "China", "Japan", "South Korea", "India", "Australia", "ASEAN", "Indo-Pacific",
    ),
    "Middle East": (
        "Israel", "Saudi Arabia", "Iran", "UAE", "oil prices", "Middle East peace",
    ),
    "Africa": (
        "South Africa", "Nigeria", "African Union", "sub-Saharan Africa", "North Africa",
    ),
    "Latin America": (
        "Brazil", "Argentina", "Chile", "Latin America", "South America",
    ),
})

COMPANY_KEYWORDS = MappingProxyType({
    "Microsoft": ("Microsoft", "Azure", "antitrust", "cloud computing"),
    "Google": ("Google", "Alphabet", "search regulation", "antitrust"),
    "Apple": ("Apple", "iPhone", "App Store", "privacy regulation"),
    "Amazon": ("Amazon", "AWS", "e-commerce regulation", "antitrust"),
    "Tesla": ("Tesla", "electric vehicles", "Elon Musk", "EV regulation"),
    "Meta": ("Meta", "Facebook", "social media regulation", "content moderation"),
})

# Every investment keyword set starts with these
INVESTMENT_BASE_KEYWORDS = ("stock market", "earnings", "SEC regulation", "financial markets")

# (trigger substrings, keyword bundle) matched against portfolio details
INVESTMENT_TRIGGERS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("crypto",), ("cryptocurrency", "bitcoin", "crypto regulation", "digital currency")),
    (("real estate",), ("real estate market", "property prices", "mortgage rates", "housing market")),
    (("tech",), ("tech stocks", "technology sector", "tech earnings", "Silicon Valley")),
    (("energy",), ("energy stocks", "oil prices", "renewable energy stocks", "utilities")),
)

# (trigger substrings, keyword bundle) matched against custom stake text
CUSTOM_STAKE_TRIGGERS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("real estate", "property"),
     ("real estate market", "property prices", "housing policy", "mortgage rates")),
    (("education", "university", "school"),
     ("education policy", "student loans", "higher education", "school funding")),
    (("healthcare", "medical", "health"),
     ("healthcare policy", "medical regulation", "health insurance", "FDA")),
    (("international", "global", "foreign"),
     ("foreign policy", "international relations", "trade policy", "diplomacy")),
    (("family", "relative"),
     ("family policy", "social policy", "welfare", "tax policy")),
)

# === Provider domain lists ===

TRUSTED_DOMAINS = (
    "reuters.com", "apnews.com", "bbc.com", "npr.org", "wsj.com",
    "nytimes.com", "washingtonpost.com", "politico.com", "axios.com", "bloomberg.com",
)

# Appended to TRUSTED_DOMAINS for users in these industries
INDUSTRY_TRUSTED_DOMAINS = MappingProxyType({
    "Technology": ("techcrunch.com", "arstechnica.com", "theverge.com"),
    "Finance": ("ft.com", "marketwatch.com", "cnbc.com"),
})

# Replaces the user's domains on the industry variation
INDUSTRY_QUERY_DOMAINS = MappingProxyType({
    "Technology": (
        "techcrunch.com", "arstechnica.com", "theverge.com", "wired.com",
        "reuters.com", "bloomberg.com",
    ),
    "Finance": (
        "bloomberg.com", "reuters.com", "wsj.com", "ft.com", "marketwatch.com", "cnbc.com",
    ),
})

FINANCIAL_DOMAINS = (
    "bloomberg.com", "reuters.com", "wsj.com", "marketwatch.com", "cnbc.com", "ft.com", "axios.com",
)

SATIRE_DOMAINS = ("clickhole.com", "theonion.com", "babylonbee.com")

# NewsAPI accepts at most 20 domains; leave headroom
MAX_DOMAINS = 15

# === Query clauses ===

NOISE_TERMS = (
    "sports", "entertainment", "celebrity", "fashion", "lifestyle",
    "recipe", "travel", "horoscope", "weather forecast",
)
SPORTS_LEAGUE_TERMS = ("NFL", "NBA", "MLB", "Olympics")

REGULATORY_CONTEXT_TERMS = (
    "regulation", "policy", "law", "government", "SEC", "FDA", "FTC", "antitrust",
)
MARKET_IMPACT_TERMS = (
    "earnings", "SEC", "regulation", "market", "stock", "shares", "investor",
)
TECHNICAL_ANALYSIS_TERMS = ("technical analysis", "chart pattern", "trading strategy")
POLICY_CONTEXT_TERMS = ("policy", "regulation", "government", "politics", "international")
