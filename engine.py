"""Pure exam rules: pacing, timing, autosave cadence, 300-question distribution. No I/O."""
# Timer: remaining = max(0, floor(started_at + limit - now)), ticking every second
# Autosave: 15s for exams of 200+ questions, 30s otherwise

EXAM_TYPES = ("standard", "strict", "practice")
OPTION_LABELS = ("A", "B", "C", "D")

# Pacing sections (long exams only)
SECTION_SIZE = 50
LONG_EXAM_THRESHOLD = 200

# Periodic sources, seconds
TIMER_TICK_SECONDS = 1
AUTOSAVE_LONG_SECONDS = 15
AUTOSAVE_SHORT_SECONDS = 30

# Urgency tiers, percent of the time limit still remaining
URGENCY_LOW_ABOVE = 50
URGENCY_MEDIUM_ABOVE = 25
URGENCY_HIGH_ABOVE = 10

# Setup
COMBINED_MODULE = "all"
COMBINED_EXAM_TOTAL = 300
COMBINED_DISTRIBUTION = {
    "numerical": 100,
    "reasoning": 75,
    "vocabulary": 75,
    "general": 50,
}
MODULES = ("vocabulary", "numerical", "reasoning", "general")
TIME_LIMIT_PRESETS = (
    (30, 20),  # quick test
    (60, 40),  # full module
    (90, 60),  # comprehensive
)
DEFAULT_PRESET_INDEX = 1
PRACTICE_QUESTION_COUNT = 20
