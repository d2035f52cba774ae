from __future__ import annotations

SYSTEM_INSTRUCTION = (
    "Act as a professional dermatological assistant. "
    "Be conservative and describe only what is visible."
)

ANALYSIS_PROMPT = (
    f"{SYSTEM_INSTRUCTION}\n"
    "Analyze this skin image using visual features recognized in the HAM10000 dataset benchmarks "
    "(e.g., pigment networks, streaks, dots/globules).\n"
    "1. Verify if it is human skin. If not, set isSkin to false.\n"
    "2. If skin, check for abnormalities. If healthy, set isHealthy to true.\n"
    "3. Provide comprehensive details: diseaseName, description, symptoms, reasons, treatments, "
    "medicines, healingPeriod, precautions, and prevention.\n"
    "4. ALWAYS prioritize educational guidance and state this is not a clinical diagnosis.\n"
    "Return ONLY valid JSON matching the response schema."
)

COMPARISON_PROMPT = (
    "Compare these two images of the same skin condition taken at different times "
    "(Baseline first, then Current).\n"
    "Assess healing progress based on visual resolution of lesions and rashes, "
    "pigment changes, and texture.\n"
    "Provide a concise progress report. This is educational guidance, not a clinical diagnosis."
)
