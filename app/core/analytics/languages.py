from typing import List, Tuple

OTHER_LANGUAGE = "Other"

# (language, extensions, substrings ignored before matching that language)
# Ordered: the first matching entry wins, so ".css" must stay ahead of ".c".
LANGUAGE_EXTENSIONS: List[Tuple[str, Tuple[str, ...], Tuple[str, ...]]] = [
    ("JavaScript", (".js",), (".json",)),
    ("TypeScript", (".ts",), (".json",)),
    ("CSS", (".css", ".scss"), ()),
    ("HTML", (".html",), ()),
    ("Python", (".py",), ()),
    ("Java", (".java",), ()),
    ("Go", (".go",), ()),
    ("Ruby", (".rb",), ()),
    ("PHP", (".php",), ()),
    # ".cs" would otherwise always land here and C# could never match.
    ("C/C++", (".c", ".cpp", ".h"), (".cs",)),
    ("C#", (".cs",), ()),
    ("Rust", (".rs",), ()),
    ("Swift", (".swift",), ()),
    ("Kotlin", (".kt",), ()),
    ("Shell", (".sh",), ()),
    ("Documentation", (".md", ".txt"), ()),
    ("Config", (".json", ".yml", ".yaml", ".xml"), ()),
]


def _mentions(text: str, extensions: Tuple[str, ...], ignored: Tuple[str, ...]) -> bool:
    for token in ignored:
        text = text.replace(token, " ")
    return any(ext in text for ext in extensions)


def detect_language(text: str) -> str:
    """
    Infers a language tag from file-extension substrings in free text
    (commit messages, changed file names).
    """
    lowered = (text or "").lower()
    for language, extensions, ignored in LANGUAGE_EXTENSIONS:
        if _mentions(lowered, extensions, ignored):
            return language
    return OTHER_LANGUAGE
