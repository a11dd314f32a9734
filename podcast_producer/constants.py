"""All magic numbers and configuration constants."""

CHUNK_MINUTES = 10                  # max minutes requested from the text model in one call
WORDS_PER_MINUTE = 160              # spoken words per minute used for chunk targets
CONTINUITY_LINES = 4                # trailing lines summarized for the next chunk
TTS_TEXT_LIMIT = 4000               # chars; speech requests are truncated to this
TTS_RETRY_COUNT = 3                 # max attempts per synthesized segment
TTS_RETRY_BASE_DELAY = 1.0          # seconds, base delay for exponential backoff
TTS_RATE = "-5%"                    # edge-tts speech rate
SAMPLE_RATE = 24000                 # Hz, PCM returned by the speech service
CHANNELS = 1
SAMPLE_WIDTH = 2                    # bytes per sample (16-bit)
WAV_HEADER_SIZE = 44

MALE_VOICE = "Enceladus"
FEMALE_VOICE = "Aoede"
MALE_PERSONA = "Milton Dilts"
FEMALE_PERSONA = "Roberta Erickson"
MALE_ALIASES = ("milton", "dilts", "enceladus")
FEMALE_ALIASES = ("roberta", "erickson", "aoede")
DISALLOWED_SPEAKERS = ("narrator", "narrador", "host")

# edge-tts stand-ins for the two canonical voices
EDGE_VOICES = {
    MALE_VOICE: "pt-BR-AntonioNeural",
    FEMALE_VOICE: "pt-BR-FranciscaNeural",
}

TEXT_MODEL = "gemini-3-pro-preview"
TTS_MODEL = "gemini-2.5-flash-preview-tts"
TEMPERATURE = 0.8
TOP_P = 0.95
TOP_K = 40
THINKING_BUDGET_QUICK = 4096
THINKING_BUDGET_DEEP = 8192

BOOK_TITLE = "Portais da Consciência"
LANGUAGE = "Brazilian Portuguese"
FREE_ROAM_CHAPTER = "Free Session"
FREE_ROAM_SUBCHAPTER = "Deep Research"
FREE_ROAM_DESCRIPTION = "Spontaneous conversation grounded in web research."
FREE_ROAM_ID = "free-roam"
FREE_MODE_LABEL = "Free mode"                # transcript DESCRIPTION for free-roam episodes
DEFAULT_MINUTES = 5
DEFAULT_TITLE = "generated_podcast"

SPEECH_ENGINES = ("gemini", "edge")
OUTPUT_DIR = "output"
OUTPUT_BITRATE = "192k"             # MP3 output bitrate
VERSION = "0.1.0"
