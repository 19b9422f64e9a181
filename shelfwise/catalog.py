"""Default achievement catalog.

Services receive a catalog explicitly; this is the one production uses.
"""

from shelfwise.schemas.achievement import (
    Achievement,
    AchievementCategory,
    AchievementRarity,
    CountCondition,
    RatingGivenCondition,
    Timeframe,
    TimeframeCondition,
)

DEFAULT_ACHIEVEMENTS: tuple[Achievement, ...] = (
    # Reading milestones
    Achievement(
        id="first_book",
        name="First Steps",
        description="Add your first book to the library",
        icon="📚",
        category=AchievementCategory.MILESTONE,
        condition=CountCondition(type="books_read", target=1),
        points=10,
        rarity=AchievementRarity.COMMON,
    ),
    Achievement(
        id="book_collector",
        name="Book Collector",
        description="Add 10 books to your library",
        icon="📖",
        category=AchievementCategory.MILESTONE,
        condition=CountCondition(type="books_read", target=10),
        points=25,
        rarity=AchievementRarity.COMMON,
    ),
    Achievement(
        id="bookworm",
        name="Bookworm",
        description="Add 50 books to your library",
        icon="🐛",
        category=AchievementCategory.MILESTONE,
        condition=CountCondition(type="books_read", target=50),
        points=100,
        rarity=AchievementRarity.UNCOMMON,
    ),
    Achievement(
        id="library_master",
        name="Library Master",
        description="Add 100 books to your library",
        icon="🏛️",
        category=AchievementCategory.MILESTONE,
        condition=CountCondition(type="books_read", target=100),
        points=250,
        rarity=AchievementRarity.RARE,
    ),
    Achievement(
        id="bibliophile",
        name="Bibliophile",
        description="Add 250 books to your library",
        icon="📚✨",
        category=AchievementCategory.MILESTONE,
        condition=CountCondition(type="books_read", target=250),
        points=500,
        rarity=AchievementRarity.EPIC,
    ),
    # Reviews
    Achievement(
        id="first_review",
        name="Critic's Debut",
        description="Write your first book review",
        icon="✍️",
        category=AchievementCategory.QUALITY,
        condition=CountCondition(type="reviews_written", target=1),
        points=15,
        rarity=AchievementRarity.COMMON,
    ),
    Achievement(
        id="thoughtful_reviewer",
        name="Thoughtful Reviewer",
        description="Write 25 book reviews",
        icon="📝",
        category=AchievementCategory.QUALITY,
        condition=CountCondition(type="reviews_written", target=25),
        points=75,
        rarity=AchievementRarity.UNCOMMON,
    ),
    Achievement(
        id="critic_extraordinaire",
        name="Critic Extraordinaire",
        description="Write 100 book reviews",
        icon="🎭",
        category=AchievementCategory.QUALITY,
        condition=CountCondition(type="reviews_written", target=100),
        points=300,
        rarity=AchievementRarity.RARE,
    ),
    # Social
    Achievement(
        id="social_butterfly",
        name="Social Butterfly",
        description="Follow 10 other readers",
        icon="🦋",
        category=AchievementCategory.SOCIAL,
        condition=CountCondition(type="following", target=10),
        points=30,
        rarity=AchievementRarity.COMMON,
    ),
    Achievement(
        id="popular_reader",
        name="Popular Reader",
        description="Have 25 followers",
        icon="⭐",
        category=AchievementCategory.SOCIAL,
        condition=CountCondition(type="followers", target=25),
        points=100,
        rarity=AchievementRarity.UNCOMMON,
    ),
    Achievement(
        id="influencer",
        name="Reading Influencer",
        description="Have 100 followers",
        icon="👑",
        category=AchievementCategory.SOCIAL,
        condition=CountCondition(type="followers", target=100),
        points=400,
        rarity=AchievementRarity.EPIC,
    ),
    # Exploration
    Achievement(
        id="genre_explorer",
        name="Genre Explorer",
        description="Read books from 5 different genres",
        icon="🗺️",
        category=AchievementCategory.EXPLORATION,
        condition=CountCondition(type="genres_explored", target=5),
        points=50,
        rarity=AchievementRarity.COMMON,
    ),
    Achievement(
        id="genre_master",
        name="Genre Master",
        description="Read books from 10 different genres",
        icon="🏆",
        category=AchievementCategory.EXPLORATION,
        condition=CountCondition(type="genres_explored", target=10),
        points=150,
        rarity=AchievementRarity.UNCOMMON,
    ),
    Achievement(
        id="omnireader",
        name="Omnireader",
        description="Read books from 15 different genres",
        icon="🌟",
        category=AchievementCategory.EXPLORATION,
        condition=CountCondition(type="genres_explored", target=15),
        points=350,
        rarity=AchievementRarity.RARE,
    ),
    # Ratings
    Achievement(
        id="perfectionist",
        name="Perfectionist",
        description="Give a perfect 10/10 rating",
        icon="💯",
        category=AchievementCategory.QUALITY,
        condition=RatingGivenCondition(target=1, rating=10),
        points=25,
        rarity=AchievementRarity.COMMON,
    ),
    Achievement(
        id="quality_seeker",
        name="Quality Seeker",
        description="Rate 50 books",
        icon="🎯",
        category=AchievementCategory.QUALITY,
        condition=CountCondition(type="books_rated", target=50),
        points=100,
        rarity=AchievementRarity.UNCOMMON,
    ),
    # Pace
    Achievement(
        id="speed_reader",
        name="Speed Reader",
        description="Complete 5 books in one month",
        icon="⚡",
        category=AchievementCategory.READING,
        condition=TimeframeCondition(target=5, timeframe=Timeframe.MONTH),
        points=75,
        rarity=AchievementRarity.UNCOMMON,
    ),
    Achievement(
        id="reading_machine",
        name="Reading Machine",
        description="Complete 10 books in one month",
        icon="🤖",
        category=AchievementCategory.READING,
        condition=TimeframeCondition(target=10, timeframe=Timeframe.MONTH),
        points=200,
        rarity=AchievementRarity.RARE,
    ),
    Achievement(
        id="daily_reader",
        name="Daily Reader",
        description="Add or finish a book 7 days in a row",
        icon="📅",
        category=AchievementCategory.READING,
        condition=CountCondition(type="consecutive_days", target=7),
        points=50,
        rarity=AchievementRarity.UNCOMMON,
    ),
)
