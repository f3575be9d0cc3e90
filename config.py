"""
Configuration for the brainrot video tools API.
All values come from the environment (or a local .env file).
"""

import os

from dotenv import load_dotenv

load_dotenv()

# --- Logging ---
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# --- HTTP ---
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "60"))

# --- Database ---
MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
DB_NAME = os.getenv("DB_NAME", "brainrot")

PDF_BRAINROT_COLLECTION = os.getenv("PDF_BRAINROT_COLLECTION", "pdfbrainrots")
TEXT_BRAINROT_COLLECTION = os.getenv("TEXT_BRAINROT_COLLECTION", "textbrainrots")
TIKTOK_VIDEO_COLLECTION = os.getenv("TIKTOK_VIDEO_COLLECTION", "tiktokvideos")
TWEET_VIDEO_COLLECTION = os.getenv("TWEET_VIDEO_COLLECTION", "tweetvideos")
VIDEO_CAPTIONS_COLLECTION = os.getenv("VIDEO_CAPTIONS_COLLECTION", "videocaptions")

# --- Auth (Clerk) ---
CLERK_JWT_KEY = os.getenv("CLERK_JWT_KEY", "").replace("\\n", "\n")
CLERK_AUTHORIZED_PARTIES = [p.strip() for p in os.getenv("CLERK_AUTHORIZED_PARTIES", "").split(",") if p.strip()]

# --- AI services ---
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_SCRIPT_MODEL = os.getenv("OPENAI_SCRIPT_MODEL", "gpt-4o-mini")
OPENAI_IMAGE_MODEL = os.getenv("OPENAI_IMAGE_MODEL", "dall-e-3")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.0-flash")

ASSEMBLY_AI_API_KEY = os.getenv("ASSEMBLY_AI_API_KEY")
ASSEMBLY_AI_BASE_URL = os.getenv("ASSEMBLY_AI_BASE_URL", "https://api.assemblyai.com/v2")
TRANSCRIPTION_TIMEOUT = float(os.getenv("TRANSCRIPTION_TIMEOUT", "600"))

ELEVEN_LAB_API_KEY = os.getenv("ELEVEN_LAB_API_KEY")
ELEVEN_LAB_BASE_URL = os.getenv("ELEVEN_LAB_BASE_URL", "https://api.elevenlabs.io/v1")
DEFAULT_VOICE_ID = os.getenv("DEFAULT_VOICE_ID", "BFqnCBsd6RMkjVDRZzb")

EXA_API_KEY = os.getenv("EXA_API_KEY")
EXA_BASE_URL = os.getenv("EXA_BASE_URL", "https://api.exa.ai")

# --- Media storage ---
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "cloudinary").lower()
CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")

AWS_REGION = os.getenv("AWS_REGION", "us-east-2")
MEDIA_BUCKET = os.getenv("MEDIA_BUCKET")

# --- Rendering ---
CREATOMATE_API_KEY = os.getenv("CREATOMATE_API_KEY")
CREATOMATE_BASE_URL = os.getenv("CREATOMATE_BASE_URL", "https://api.creatomate.com/v1")

REMOTION_AWS_ACCESS_KEY_ID = os.getenv("REMOTION_AWS_ACCESS_KEY_ID")
REMOTION_AWS_SECRET_ACCESS_KEY = os.getenv("REMOTION_AWS_SECRET_ACCESS_KEY")
REMOTION_LAMBDA_REGION = os.getenv("REMOTION_LAMBDA_REGION", "us-east-2")
REMOTION_LAMBDA_BUCKET_NAME = os.getenv("REMOTION_LAMBDA_BUCKET_NAME")
REMOTION_LAMBDA_SERVE_URL = os.getenv("REMOTION_LAMBDA_SERVE_URL")
REMOTION_LAMBDA_VERSION = os.getenv("REMOTION_LAMBDA_VERSION", "4.0.272")
REMOTION_LAMBDA_MEMORY_SIZE_IN_MB = int(os.getenv("REMOTION_LAMBDA_MEMORY_SIZE_IN_MB", "2048"))
REMOTION_LAMBDA_DISK_SIZE_IN_MB = int(os.getenv("REMOTION_LAMBDA_DISK_SIZE_IN_MB", "2048"))
REMOTION_LAMBDA_TIMEOUT_IN_SECONDS = int(os.getenv("REMOTION_LAMBDA_TIMEOUT_IN_SECONDS", "240"))
REMOTION_FRAMES_PER_LAMBDA = int(os.getenv("REMOTION_FRAMES_PER_LAMBDA", "10"))
REMOTION_WEBHOOK_URL = os.getenv("REMOTION_WEBHOOK_URL")
