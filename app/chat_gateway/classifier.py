import re
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence


# -----------------------------------------------------------------------------
# RELEVANCE CLASSIFIER
# Purpose: decide whether a chat message is about the user's finances
# before any language model call is made.
# Order: abuse patterns -> off-topic deny-list -> financial allow-list.
# -----------------------------------------------------------------------------


FINANCIAL_KEYWORDS = (
    "transaction",
    "spent",
    "spend",
    "spending",
    "expense",
    "income",
    "payment",
    "paid",
    "pay",
    "bought",
    "purchase",
    "buy",
    "cost",
    "account",
    "balance",
    "savings",
    "checking",
    "credit",
    "debit",
    "category",
    "categories",
    "budget",
    "budgeting",
    "total",
    "sum",
    "average",
    "analyze",
    "analysis",
    "report",
    "how much",
    "show me",
    "what is",
    "calculate",
    "breakdown",
    "this month",
    "last month",
    "this year",
    "today",
    "yesterday",
    "this week",
    "last week",
    "monthly",
    "daily",
    "yearly",
    "money",
    "dollar",
    "amount",
    "cash",
    "funds",
    "finance",
    "financial",
)

# Matched as substrings, so words hiding inside ordinary finance wording are
# left out: "hi" (this), "ass" (class), "date" (update), "test" (latest),
# "king" (banking), "rip" (subscription), "high" (highest) and the like.
OFF_TOPIC_KEYWORDS = (
    # Weather & environment
    "weather",
    "temperature",
    "forecast",
    "sunny",
    "cloudy",
    "snow",
    "storm",
    # News & media
    "news",
    "sports",
    "recipe",
    "cooking",
    "movie",
    "music",
    "song",
    "film",
    "tv show",
    "netflix",
    "youtube",
    "video",
    "podcast",
    "radio",
    # Entertainment
    "joke",
    "a story",
    "poem",
    "game",
    "meme",
    "funny",
    "hilarious",
    "lol",
    "lmao",
    "rofl",
    "comedy",
    "riddle",
    "puzzle",
    # Profanity & sexual content
    "fuck",
    "shit",
    "damn",
    "bitch",
    "dick",
    "cock",
    "pussy",
    "sex",
    "porn",
    "nude",
    "naked",
    "boobs",
    "tits",
    "penis",
    "vagina",
    "horny",
    "sexy",
    "babe",
    "daddy",
    "mommy",
    "kinky",
    "fetish",
    "kink",
    # Drugs & alcohol
    "weed",
    "marijuana",
    "cocaine",
    "drugs",
    "stoned",
    "drunk",
    "beer",
    "alcohol",
    "vodka",
    "whiskey",
    "wine",
    "smoke",
    "smoking",
    "vape",
    # Violence
    "kill",
    "murder",
    "suicide",
    "death",
    "fight",
    "punch",
    "kick",
    "shoot",
    "gun",
    "weapon",
    "bomb",
    "terrorism",
    "violence",
    "hurt",
    "attack",
    # Dating
    "dating",
    "girlfriend",
    "boyfriend",
    "love",
    "crush",
    "romance",
    "kiss",
    "marry",
    "wedding",
    "divorce",
    "breakup",
    "tinder",
    "bumble",
    "hookup",
    # Schoolwork
    "homework",
    "assignment",
    "essay",
    "exams",
    "quiz",
    "study",
    "school",
    "college",
    "university",
    "teacher",
    "professor",
    "grade",
    "gpa",
    # General tech
    "code",
    "programming",
    "javascript",
    "python",
    "java",
    "html",
    "react",
    "angular",
    "node",
    "database",
    "sql",
    "debug",
    "compile",
    # Health
    "doctor",
    "hospital",
    "medicine",
    "sick",
    "disease",
    "symptom",
    "diagnosis",
    "treatment",
    "surgery",
    "pregnant",
    "pregnancy",
    "cancer",
    "diabetes",
    "covid",
    # Greetings & identity probes
    "hello",
    "wassup",
    "howdy",
    "greetings",
    "who are you",
    "what are you",
    "tell me about yourself",
    "are you real",
    "are you human",
    "are you ai",
    "are you bot",
    "consciousness",
    "sentient",
    # Politics & religion
    "politics",
    "election",
    "president",
    "government",
    "democrat",
    "republican",
    "religion",
    "god",
    "jesus",
    "allah",
    "buddha",
    "hindu",
    "christian",
    "muslim",
    "church",
    "mosque",
    "temple",
    "pray",
    "prayer",
    # Spam
    "asdf",
    "qwerty",
    "testing",
    "blah",
    "whatever",
    "random",
    "spam",
    "gibberish",
    "nonsense",
    "garbage",
    "trash",
    "stupid",
    "dumb",
    "idiot",
    # Prompt injection
    "ignore",
    "forget",
    "disregard",
    "instruction",
    "system",
    "prompt",
    "jailbreak",
    "hack",
    "exploit",
    "bypass",
    "override",
    "admin",
    "root",
    "sudo",
    # Crypto & trading
    "bitcoin",
    "crypto",
    "cryptocurrency",
    "nft",
    "ethereum",
    "dogecoin",
    "trading",
    "forex",
    "stocks",
    "shares",
    "investment advice",
    "pump",
    "dump",
    # Gaming
    "fortnite",
    "minecraft",
    "roblox",
    "valorant",
    "league",
    "csgo",
    "pubg",
    "gaming",
    "xbox",
    "playstation",
    "nintendo",
    "steam",
    "epic games",
    # Social media
    "instagram",
    "facebook",
    "twitter",
    "tiktok",
    "snapchat",
    "whatsapp",
    "discord",
    "telegram",
    "reddit",
    "linkedin",
    "pinterest",
    # Food
    "pizza",
    "burger",
    "pasta",
    "sushi",
    "coffee",
    "restaurant",
    "food delivery",
    "uber eats",
    "doordash",
    "grubhub",
    # Travel
    "vacation",
    "holiday",
    "travel",
    "flight",
    "hotel",
    "airbnb",
    "tourism",
    "passport",
    "country",
    "beach",
    "mountain",
    # Slang
    "bruh",
    "fire",
    "no cap",
    "bussin",
    "sheesh",
    "slay",
    "queen",
    "simp",
    "chad",
    "cringe",
    "sus",
    "poggers",
    "yeet",
    "oof",
    "ez",
    "noob",
    "pwn",
    "rekt",
    "salty",
    "toxic",
    "troll",
    "karen",
    "boomer",
    "zoomer",
    "millennial",
)

LEET_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"p0rn",
        r"s3x",
        r"dr4g",
        r"w33d",
        r"h4ck",
        r"f\*ck",
        r"sh\*t",
        r"b\*tch",
        r"a\$\$",
    )
)

REPEATED_CHAR = re.compile(r"(.)\1{4,}")
EXCESSIVE_PUNCTUATION = re.compile(r"[!?]{3,}")
DATA_QUESTION = re.compile(r"show|tell|what|how much|how many|list|get|find", re.IGNORECASE)


@dataclass(frozen=True)
class RelevanceVerdict:
    is_relevant: bool
    confidence: float


class RelevanceClassifier:
    """
    Layered deny-list then allow-list check of a chat message.

    The keyword lists and abuse patterns are constructor arguments so they can
    be swapped (tests, other languages) without touching the pipeline.
    """

    def __init__(
        self,
        financial_keywords: Optional[Iterable[str]] = None,
        off_topic_keywords: Optional[Iterable[str]] = None,
        abuse_patterns: Optional[Sequence[re.Pattern]] = None,
    ):
        if financial_keywords is None:
            financial_keywords = FINANCIAL_KEYWORDS
        if off_topic_keywords is None:
            off_topic_keywords = OFF_TOPIC_KEYWORDS
        if abuse_patterns is None:
            abuse_patterns = LEET_PATTERNS

        self.financial_keywords = tuple(k.lower() for k in financial_keywords)
        self.off_topic_keywords = tuple(k.lower() for k in off_topic_keywords)
        self.abuse_patterns = tuple(abuse_patterns)

    def is_abusive(self, message: str) -> bool:
        lower_message = message.lower()

        # "hiiiii", "$$$$$"
        if REPEATED_CHAR.search(lower_message):
            return True

        # Shouting: more than 5 all-caps words
        caps_words = [
            word for word in message.split(" ") if len(word) > 2 and word == word.upper()
        ]
        if len(caps_words) > 5:
            return True

        if EXCESSIVE_PUNCTUATION.search(message):
            return True

        return any(pattern.search(lower_message) for pattern in self.abuse_patterns)

    def classify(self, message: str) -> RelevanceVerdict:
        lower_message = message.lower()

        if self.is_abusive(message):
            return RelevanceVerdict(False, 0.95)

        if any(keyword in lower_message for keyword in self.off_topic_keywords):
            return RelevanceVerdict(False, 0.9)

        keyword_count = sum(
            1 for keyword in self.financial_keywords if keyword in lower_message
        )
        has_data_question = DATA_QUESTION.search(lower_message) is not None

        if keyword_count > 0 or has_data_question:
            confidence = min(keyword_count * 0.3 + (0.4 if has_data_question else 0), 1)
            return RelevanceVerdict(True, confidence)

        if len(lower_message) < 20 and has_data_question:
            return RelevanceVerdict(True, 0.5)

        return RelevanceVerdict(False, 0.8)


default_classifier = RelevanceClassifier()
