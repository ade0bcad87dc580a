"""
Gemini service for suitability analysis, CV extraction and job-match suggestions.
Uses the google-genai client (API key or Vertex AI).
Upstream 429 responses are retried with 2s / 4s / 8s backoff; other errors are not retried.
"""
import logging
import time
from pathlib import Path

from kormo.config import get_settings
from kormo.models.profile import Profile
from kormo.models.task import Task
from kormo.schemas.analysis import ProfileSnapshot
from kormo.services.errors import AIServiceError, AIQuotaExhaustedError

logger = logging.getLogger(__name__)

RETRY_BACKOFF_SECONDS = (2, 4, 8)

# Prefix of each profile field the suitability prompt sees (the cache key uses the same)
PROFILE_FIELD_PREFIXES = {"skills": 50, "experience": 30, "education": 30}
REQUIRED_SKILLS_PREFIX = 50

# Lazy client to avoid import/credentials errors at import time
_gemini_client = None


def _get_client():
    global _gemini_client
    if _gemini_client is not None:
        return _gemini_client
    try:
        from google import genai
        from google.oauth2 import service_account
    except ImportError as e:
        raise AIServiceError(
            "Google GenAI not installed. pip install google-genai google-auth"
        ) from e

    settings = get_settings()
    if settings.gemini_api_key:
        _gemini_client = genai.Client(api_key=settings.gemini_api_key)
        return _gemini_client

    if not settings.vertex_project_id:
        raise AIServiceError("Neither gemini_api_key nor vertex_project_id is configured")

    credentials = None
    if settings.vertex_credentials_path:
        path = Path(settings.vertex_credentials_path)
        if path.is_file():
            credentials = service_account.Credentials.from_service_account_file(
                str(path),
                scopes=["https://www.googleapis.com/auth/cloud-platform"],
            )

    _gemini_client = genai.Client(
        vertexai=True,
        project=settings.vertex_project_id,
        location=settings.vertex_location,
        credentials=credentials,
    )
    return _gemini_client


def _is_quota_error(error) -> bool:
    return getattr(error, "code", None) == 429 or "RESOURCE_EXHAUSTED" in str(getattr(error, "status", "") or "")


def _generate(contents, *, temperature: float, max_output_tokens: int, top_k: float | None = None,
              top_p: float | None = None) -> str:
    """Call Gemini once, retrying only on rate-limit responses. Returns the reply text."""
    from google.genai import errors as genai_errors
    from google.genai.types import GenerateContentConfig

    client = _get_client()
    settings = get_settings()
    config = GenerateContentConfig(
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        top_k=top_k,
        top_p=top_p,
    )

    attempts = len(RETRY_BACKOFF_SECONDS) + 1
    response = None
    for attempt in range(attempts):
        try:
            response = client.models.generate_content(
                model=settings.gemini_model,
                contents=contents,
                config=config,
            )
            break
        except genai_errors.APIError as e:
            if _is_quota_error(e):
                if attempt < attempts - 1:
                    delay = RETRY_BACKOFF_SECONDS[attempt]
                    logger.warning("Gemini rate limit hit, retrying in %ss (attempt %s/%s)", delay, attempt + 1, attempts)
                    time.sleep(delay)
                    continue
                raise AIQuotaExhaustedError("Gemini quota exhausted after retries") from e
            raise AIServiceError(f"Gemini API error {getattr(e, 'code', '?')}") from e

    if not response or not response.candidates:
        raise AIServiceError("Empty response from model")
    candidate = response.candidates[0]
    if not candidate.content or not candidate.content.parts:
        raise AIServiceError("No text in model response")
    text = getattr(response, "text", None) or candidate.content.parts[0].text
    if not text:
        raise AIServiceError("No text in model response")
    return text


# ---- Suitability analysis ----

def _prefix(value: str | None, length: int) -> str:
    return (value or "")[:length]


def build_suitability_prompt(profile: ProfileSnapshot, task: Task) -> str:
    """Compact prompt; only field prefixes are sent to keep token usage low."""
    skills = _prefix(profile.skills, PROFILE_FIELD_PREFIXES["skills"])
    experience = _prefix(profile.experience, PROFILE_FIELD_PREFIXES["experience"])
    education = _prefix(profile.education, PROFILE_FIELD_PREFIXES["education"])
    required = _prefix(task.required_skills, REQUIRED_SKILLS_PREFIX)
    return f"""You are a strict data formatter and hiring analyst. Your ONLY task is to analyze the worker-job fit from the DATA block and return the analysis in the exact format specified.

**RULES:**
1. Generate a 'Score' from 0.00 (no fit) to 1.00 (perfect fit).
2. Follow the 'STRICT OUTPUT FORMAT' precisely.
3. Do NOT add any text, explanations, or conversational elements before or after the formatted response.
4. The response MUST begin with 'Score:'.
5. Each main section (Strengths, Weaknesses, Suggestions) MUST be a bullet point.
6. Each item under a main section MUST be a bullet point.

**DATA:**
WORKER: Skills: {skills} | Exp: {experience} | Edu: {education}
JOB: {task.title} | Req: {required} | Level: {task.experience_level or 'Any'}

**STRICT OUTPUT FORMAT:**
Score: 0.XX
• Strengths:
• [Item 1]
• [Item 2]
• [Item 3]
• Weaknesses:
• [Item 1]
• [Item 2]
• [Item 3]
• Suggestions:
• [Item 1]
• [Item 2]
• [Item 3]"""


def generate_suitability(profile: ProfileSnapshot, task: Task) -> str:
    """Raw bullet-format reply for a worker/task pair. Raises AIServiceError subclasses."""
    prompt = build_suitability_prompt(profile, task)
    return _generate(prompt, temperature=0.3, max_output_tokens=500, top_k=20, top_p=0.8)


# ---- Find best matches ----

def build_match_prompt(profile: Profile) -> str:
    name = f"{profile.first_name or ''} {profile.last_name or ''}".strip()
    return f"""You are a career advisor AI. Analyze this professional's profile and suggest the best job search keywords and appropriate job level.

User Profile:
- Name: {name}
- Skills: {profile.skills or 'Not provided'}
- Experience: {profile.experience or 'Not provided'}
- Education: {profile.education or 'Not provided'}

Based on this profile, provide:
1. 2-3 most relevant job search keywords (specific job titles, technologies, or fields that match their skills and experience)
2. The most appropriate job level from: Entry, Intermediate, Senior, or Expert

Job Level Guidelines:
- Entry: 0-2 years of experience, entry-level skills, fresh graduates
- Intermediate: 2-5 years of experience, solid skill set, some leadership
- Senior: 5-10 years of experience, advanced skills, team leadership
- Expert: 10+ years of experience, deep expertise, strategic leadership

Respond ONLY with a valid JSON object in this exact format:
{{
  "keywords": ["keyword1", "keyword2", "keyword3"],
  "level": "Entry|Intermediate|Senior|Expert"
}}"""


def generate_match_suggestion(profile: Profile) -> str:
    return _generate(build_match_prompt(profile), temperature=0.3, max_output_tokens=512)


# ---- CV extraction ----

CV_EXTRACTION_PROMPT = """Analyze this CV/resume and extract the following information in JSON format:

- first_name: person's first name
- last_name: person's last name
- skills: main technical and soft skills (as a comma-separated string)
- work_experience: professional experience summary (detailed text)
- education: educational background (degree, institution, year)
- phone_number: contact phone number if available

Respond ONLY with a valid JSON object containing these fields. If any information is not available, set the field to null or empty string."""


def generate_cv_extraction(filename: str, file_bytes: bytes) -> str:
    """JSON reply with profile fields. .txt is sent as text, .pdf as inline document bytes."""
    from google.genai import types

    if filename.lower().endswith(".txt"):
        cv_text = file_bytes.decode("utf-8", errors="replace")
        contents = f"{CV_EXTRACTION_PROMPT}\n\nCV content:\n{cv_text}"
    else:
        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=file_bytes, mime_type="application/pdf"),
                    types.Part.from_text(text=CV_EXTRACTION_PROMPT),
                ],
            )
        ]
    return _generate(contents, temperature=0.1, max_output_tokens=2048)
