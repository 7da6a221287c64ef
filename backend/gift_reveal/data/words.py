DAILY_WORDS: tuple[str, ...] = (
    "Hello",
    "Sunshine",
    "Courage",
    "Laughter",
    "Wonder",
    "Patience",
    "Adventure",
    "Gratitude",
    "Tenderness",
    "Curiosity",
    "Kindness",
    "Sparkle",
    "Harmony",
    "Daydream",
    "Warmth",
    "Serendipity",
    "Bloom",
    "Freedom",
    "Melody",
    "Starlight",
    "Comfort",
    "Journey",
    "Delight",
    "Breeze",
    "Promise",
    "Treasure",
    "Brave",
    "Gentle",
    "Cozy",
    "Radiant",
    "Together",
    "Anticipation",
)
