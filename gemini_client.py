import google.generativeai as genai
from config import settings
from schemas import CategorizedRecommendations, ProfileData
import logging

logger = logging.getLogger(__name__)

def get_gemini_client():
    """Initialize and return Gemini client."""
    if not settings.GEMINI_API_KEY:
        raise ValueError("GEMINI_API_KEY environment variable not set")

    genai.configure(api_key=settings.GEMINI_API_KEY)
    return genai.GenerativeModel(settings.GEMINI_MODEL)

def fallback_summary(profile: ProfileData, recommendations: CategorizedRecommendations) -> str:
    """Deterministic summary used when Gemini is unavailable."""
    countries = ", ".join(profile.preferred_countries) or "your selected countries"
    return (
        f"Based on your profile, we've identified {recommendations.count} universities in {countries}: "
        f"{len(recommendations.dream)} dream schools, {len(recommendations.target)} target schools, "
        f"and {len(recommendations.safe)} safe schools."
    )

def generate_recommendation_summary(
    profile: ProfileData,
    recommendations: CategorizedRecommendations
) -> str:
    """
    Generate a short AI explanation of the recommendation mix.

    Args:
        profile: Student profile used for scoring
        recommendations: Dream/target/safe buckets

    Returns:
        Explanation text (falls back to a fixed summary if the AI call fails)
    """
    if not settings.GEMINI_API_KEY or recommendations.count == 0:
        return fallback_summary(profile, recommendations)

    top_names = [r.university.name for r in (recommendations.safe + recommendations.target + recommendations.dream)[:5]]

    # Build prompt
    prompt = f"""
You are an AI study-abroad counselor. Generate a brief explanation (2-3 sentences) for the following university recommendations.

Student Profile:
- GPA: {profile.gpa}
- Intended degree: {profile.intended_degree.value if profile.intended_degree else "not set"}
- Field of study: {profile.field_of_study or "not set"}
- Budget: up to ${profile.budget_max}
- Preferred countries: {", ".join(profile.preferred_countries) or "any"}

Recommendations:
- {len(recommendations.dream)} DREAM universities (reach schools, weaker fit)
- {len(recommendations.target)} TARGET universities (good match for profile)
- {len(recommendations.safe)} SAFE universities (strong fit, likely admission)
- Top matches: {", ".join(top_names)}

Generate a concise explanation of the overall strategy. Focus on why this mix is appropriate for the student's profile.
Return ONLY the explanation text, no JSON, no formatting.
"""

    try:
        model = get_gemini_client()
        response = model.generate_content(prompt)
        return response.text.strip()
    except Exception as e:
        # Fallback message if AI fails
        logger.warning(f"[GEMINI] Summary generation failed: {str(e)}")
        return fallback_summary(profile, recommendations)
