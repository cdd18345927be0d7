"""
Static keyword tables used by the conversation classifier.

Everything here is pure data. Table order matters where scores tie: the
first entry with the highest score wins.
"""

import re


def _words(*terms: str) -> re.Pattern:
    """Compile terms into one case-insensitive pattern anchored at word starts."""
    return re.compile(r"\b(?:" + "|".join(terms) + r")", re.IGNORECASE)


# Topic buckets: (key, label, emoji, keyword prefixes)
TOPIC_BUCKETS = [
    (
        "coding",
        "Coding & Scripts",
        "🧑‍💻",
        [
            "code", "coding", "bug", "debug", "python", "javascript", "typescript",
            "react", "next.js", "api", "function", "script", "deploy", "sql", "prisma",
        ],
    ),
    (
        "writing",
        "Writing & Storytelling",
        "✍️",
        ["write", "writing", "blog", "article", "story", "essay", "rewrite", "tone", "voice"],
    ),
    (
        "learning",
        "Learning & Explaining",
        "📚",
        ["learn", "study", "explain", "understand", "eli5", "homework", "lesson"],
    ),
    (
        "planning",
        "Planning & Productivity",
        "🗂️",
        ["plan", "planning", "schedule", "roadmap", "project", "timeline", "todo", "task"],
    ),
    (
        "travel",
        "Travel Planning",
        "✈️",
        ["travel", "trip", "flight", "hotel", "itinerary", "vacation"],
    ),
    (
        "career",
        "Career & Work",
        "💼",
        ["resume", "interview", "job", "career", "work", "meeting", "manager"],
    ),
    (
        "creative",
        "Creative Play",
        "🎨",
        ["idea", "brainstorm", "creative", "design", "art", "game", "music"],
    ),
]

TOPIC_PATTERNS = {
    key: [re.compile(r"\b" + re.escape(kw)) for kw in keywords]
    for key, _label, _emoji, keywords in TOPIC_BUCKETS
}
TOPIC_LABELS = {key: (label, emoji) for key, label, emoji, _kw in TOPIC_BUCKETS}

# Intents, in tie-break order
INTENTS = ["build", "debug", "write", "plan", "learn", "decide", "vent", "brainstorm"]

INTENT_PATTERNS = {
    "build": _words(r"build(?:ing)?\b", r"creat(?:e|ing)\b", r"implement", r"set ?up\b",
               r"scaffold", r"deploy", r"add a feature", r"make an? (?:app|site|website|tool|bot)"),
    "debug": _words(r"bug", r"debug", r"error", r"broken\b", r"fix(?:ing|ed|es)?\b", r"crash",
               r"exception", r"traceback", r"doesn'?t work", r"not working", r"fail"),
    "write": _words(r"write\b", r"writing\b", r"rewrite", r"draft", r"proofread", r"essay",
               r"blog", r"article", r"caption", r"cover letter", r"reword"),
    "plan": _words(r"plan\b", r"planning", r"schedule", r"roadmap", r"itinerary", r"timeline",
               r"organi[sz]e", r"checklist", r"to-?do"),
    "learn": _words(r"explain", r"what is\b", r"what are\b", r"how does", r"understand", r"learn",
               r"teach", r"eli5", r"difference between", r"study"),
    "decide": _words(r"should i\b", r"which is better", r"which one", r"pros and cons", r"decid",
               r"choose", r"compare", r"worth it", r"versus\b", r"vs\.?\s"),
    "vent": _words(r"i feel", r"frustrat", r"stressed", r"anxious", r"overwhelm", r"so tired",
               r"tired of", r"i hate", r"lonely", r"rant"),
    "brainstorm": _words(r"ideas?\b", r"brainstorm", r"suggest", r"names? for", r"what if\b",
               r"come up with", r"alternatives"),
}

# Deliverables, in tie-break order
DELIVERABLES = ["code", "plan", "email", "story", "analysis", "decision"]

DELIVERABLE_PATTERNS = {
    "code": _words(r"code\b", r"function", r"script\b", r"class\b", r"component", r"sql\b",
                   r"query", r"regex", r"endpoint", r"snippet"),
    "plan": _words(r"plan\b", r"schedule", r"itinerary", r"roadmap", r"checklist", r"agenda",
                   r"timeline"),
    "email": _words(r"e-?mail", r"reply to", r"message to", r"letter\b", r"linkedin"),
    "story": _words(r"story", r"poem", r"lyrics", r"novel", r"chapter", r"character", r"plot\b"),
    "analysis": _words(r"analy[sz]", r"data\b", r"report\b", r"summar", r"breakdown",
                       r"spreadsheet", r"metrics"),
    "decision": _words(r"should i\b", r"decid", r"which one", r"pros and cons", r"recommend",
                       r"better option"),
}

# Topic-driven defaults, applied as a +1 bump before picking the winner
TOPIC_DEFAULT_INTENT = {
    "coding": "build",
    "writing": "write",
    "learning": "learn",
    "planning": "plan",
    "travel": "plan",
    "career": "decide",
    "creative": "brainstorm",
}

TOPIC_DEFAULT_DELIVERABLE = {
    "coding": "code",
    "writing": "story",
    "learning": "analysis",
    "planning": "plan",
    "travel": "plan",
    "career": "email",
    "creative": "story",
}

# Technology / stack terms: display name -> pattern
STACK_TERMS = {
    "Python": _words(r"python\b", r"pip install"),
    "JavaScript": _words(r"javascript", r"\bjs\b"),
    "TypeScript": _words(r"typescript", r"\bts\b"),
    "React": _words(r"react\b", r"jsx\b"),
    "Next.js": _words(r"next\.?js"),
    "Node.js": _words(r"node\.?js", r"npm\b"),
    "SQL": _words(r"sql\b", r"mysql"),
    "Postgres": _words(r"postgres"),
    "Prisma": _words(r"prisma"),
    "Docker": _words(r"docker"),
    "Kubernetes": _words(r"kubernetes", r"k8s"),
    "AWS": _words(r"aws\b", r"lambda\b", r"\bs3\b"),
    "Rust": _words(r"rust\b", r"cargo\b"),
    "Go": _words(r"golang"),
    "Java": _words(r"java\b"),
    "C++": re.compile(r"c\+\+", re.IGNORECASE),
    "Swift": _words(r"swift\b", r"swiftui"),
    "Kotlin": _words(r"kotlin"),
    "Django": _words(r"django"),
    "Flask": _words(r"flask"),
    "FastAPI": _words(r"fastapi"),
    "Tailwind": _words(r"tailwind"),
    "Excel": _words(r"excel\b", r"spreadsheet", r"vlookup"),
    "Notion": _words(r"notion\b"),
    "Figma": _words(r"figma"),
    "Git": _words(r"git\b", r"github"),
    "Linux": _words(r"linux", r"ubuntu"),
    "Bash": _words(r"bash\b", r"shell script"),
    "Firebase": _words(r"firebase"),
    "Supabase": _words(r"supabase"),
    "Pandas": _words(r"pandas"),
    "PyTorch": _words(r"pytorch", r"torch\b"),
    "TensorFlow": _words(r"tensorflow"),
    "WordPress": _words(r"wordpress"),
    "Shopify": _words(r"shopify"),
    "Unity": _words(r"unity\b"),
    "Godot": _words(r"godot"),
    "Blender": _words(r"blender\b"),
    "Arduino": _words(r"arduino"),
    "Raspberry Pi": _words(r"raspberry pi"),
    "Haskell": _words(r"haskell"),
    "Elixir": _words(r"elixir\b"),
    "Lua": _words(r"lua\b"),
    "Zig": _words(r"zig\b"),
    "COBOL": _words(r"cobol"),
    "Fortran": _words(r"fortran"),
    "VBA": _words(r"vba\b", r"excel macro"),
}

# Too common to describe a conversation on their own
GENERIC_STACK_TERMS = frozenset({"Git", "SQL", "Excel", "Linux", "Bash"})

# Unusual tools worth calling out as an outlier
WEIRD_STACK_TERMS = frozenset(
    {"Arduino", "Raspberry Pi", "Haskell", "Elixir", "Lua", "Zig", "COBOL", "Fortran",
     "VBA", "Blender", "Godot", "Unity"}
)

# Project themes: key -> (label, pattern)
PROJECT_THEMES = {
    "web_app": ("a web app", _words(r"website", r"web ?app", r"landing page", r"frontend",
                                    r"dashboard", r"backend")),
    "mobile_app": ("a mobile app", _words(r"mobile app", r"ios\b", r"android", r"app store")),
    "data_pipeline": ("a data pipeline", _words(r"pipeline", r"etl\b", r"scrap(?:e|er|ing)",
                                                r"dataset", r"csv\b")),
    "automation": ("an automation", _words(r"automat", r"bot\b", r"cron", r"workflow", r"zapier")),
    "job_hunt": ("the job hunt", _words(r"resume", r"cover letter", r"interview", r"job application",
                                        r"recruiter")),
    "side_business": ("a side business", _words(r"startup", r"business plan", r"pitch deck",
                                                r"marketing", r"customers", r"pricing")),
    "fitness": ("a fitness plan", _words(r"workout", r"gym\b", r"diet\b", r"calorie", r"meal plan",
                                         r"marathon training")),
    "trip": ("a trip", _words(r"trip\b", r"itinerary", r"flight", r"hotel", r"vacation")),
    "novel": ("a story project", _words(r"novel\b", r"chapter", r"short story", r"plot\b",
                                        r"worldbuilding")),
    "studies": ("your studies", _words(r"exam\b", r"homework", r"thesis", r"course\b", r"lecture",
                                       r"assignment")),
    "game": ("a game", _words(r"game\b", r"level design", r"godot", r"unity\b")),
}

# Habit phrases counted globally and per conversation
HABIT_PATTERNS = {
    "thank you": re.compile(r"\bthanks\b|\bthank you\b"),
    "please": re.compile(r"\bplease\b|\bpls\b"),
    "sorry": re.compile(r"\bsorry\b|\bmy bad\b|\bapolog(?:y|ize|ise|ies)\b"),
    "quick question": re.compile(r"\bquick question\b"),
    "real quick": re.compile(r"\breal quick\b"),
    "simple question": re.compile(r"\bsimple question\b"),
    "step by step": re.compile(r"\bstep[- ]by[- ]step\b"),
    "one more thing": re.compile(r"\bone more (?:thing|question)\b"),
    "what about": re.compile(r"\bwhat about\b"),
    "can you": re.compile(r"\bcan you\b"),
    "explain like I'm 5": re.compile(r"\bexplain (?:it )?like (?:i'?m|i am) (?:5|five)\b|\beli5\b"),
    "why is this broken": re.compile(r"\bwhy (?:is|is it|it's) (?:this|it) broken\b"),
    "doesn't work": re.compile(r"\bdoesn'?t work\b|\bnot working\b|\bisn'?t working\b"),
    "wtf": re.compile(r"\bwtf\b|\bwhat the (?:hell|heck)\b"),
}

POLITE_HABITS = ("please", "thank you", "sorry")
QUICK_HABITS = ("quick question", "real quick", "simple question")

SPICY_WORD_PATTERN = re.compile(r"\b(?:useless|idiot|stupid|dumb|garbage|trash|toaster)\b")
SWEAR_PATTERN = re.compile(r"\b(?:fuck\w*|shit\w*|damn)\b")

# Terms used to address the assistant. Group 1 is the nickname.
NICKNAME_PATTERNS = [
    re.compile(
        r"\byou(?:'re| are)? (?:such )?(?:an? )?(?:absolute |total |little )?"
        r"(useless|stupid|dumb|idiot|genius|legend|clown|toaster|robot|machine|champ|lifesaver)\b"
    ),
    re.compile(
        r"\b(?:hey|ok|okay|thanks|thank you|listen|come on|dude),? "
        r"(buddy|bro|dude|pal|chief|boss|champ|robot|toaster|genius|legend|my friend)\b"
    ),
]

WIN_PATTERN = re.compile(
    r"\b(?:it works|works now|that worked|it worked|fixed it|solved|finally|perfect|nailed it|"
    r"that did it|got it working|shipped|launched|lifesaver|you're the best|awesome)\b"
)
INDECISION_PATTERN = re.compile(
    r"\b(?:should i|not sure|unsure|or maybe|on second thought|can'?t decide|cannot decide|"
    r"which one|torn between|changed? my mind|actually,? (?:let'?s|maybe))\b"
)
TROUBLE_PATTERN = re.compile(
    r"\b(?:broken|doesn'?t work|not working|isn'?t working|error|bug|crash(?:es|ed|ing)?|"
    r"fails?|failing|failed|wrong|stuck|wtf|what the (?:hell|heck))\b"
)
AGAIN_STILL_PATTERN = re.compile(r"\b(?:again|still)\b")
QUESTION_BURST_PATTERN = re.compile(r"\?{3,}")
EXCLAIM_BURST_PATTERN = re.compile(r"!{3,}")
PUNCTUATION_BURST_PATTERN = re.compile(r"[?!]{3,}")

TOKEN_SPLIT_PATTERN = re.compile(r"[^a-z0-9'\-]+")

STOPWORDS = frozenset(
    """
    the and a an to of in on for with at by from as is are was were be been it this that these
    those i me my we our you your they their he she his her them or but so if then than not no
    yes do does did can could should would will just like about what when where why how who which
    also into over under up down out very really more most some any all name email phone url
    have has had get got its it's i'm don't can't there here want need make one two use using
    """.split()
)

LATE_NIGHT_HOURS = frozenset({23, 0, 1, 2, 3, 4})
