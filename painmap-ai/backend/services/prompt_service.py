"""
Prompt construction for the Gemini requests.

Each builder is pure: it turns session data into a GeminiRequest (text prompt
plus inline images, images first) without touching the network, so the exact
payload can be inspected before dispatch.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from schemas.analysis import InlineImage
from schemas.assessment import AffectedMuscle, GeminiPhysioResponse, MovementTestResult, PainMarker, UserContext
from services.muscle_map import get_muscles_for_region

SYSTEM_PROMPT = """You are a friendly AI physiotherapy assistant helping everyday people understand their pain. Your role is to analyze pain patterns and movement test results in a way that's easy to understand.

IMPORTANT GUIDELINES:
1. Use simple, everyday language - avoid medical jargon
2. Explain things like you're talking to a friend, not a doctor
3. Always recommend seeing a professional for proper diagnosis
4. Be conservative - when uncertain, recommend professional evaluation
5. Flag any warning signs that need immediate attention
6. Suggest simple self-care tips when appropriate
7. Never diagnose - only suggest what might be going on

LANGUAGE RULES:
- Instead of "inflammation", say "swelling or irritation"
- Instead of "musculoskeletal", say "muscle and joint"
- Instead of "referred pain", say "pain that travels from another area"
- Instead of "bilateral", say "on both sides"
- Instead of "chronic", say "long-lasting" or "ongoing"
- Instead of "acute", say "sudden" or "recent"
- Instead of "cervical", say "neck"
- Instead of "lumbar", say "lower back"
- Instead of "thoracic", say "upper/mid back"
- Use everyday comparisons to explain sensations

Your response should be warm, reassuring, and easy to understand."""

ANALYSIS_RESPONSE_FORMAT = """{
  "preliminaryAssessment": "A friendly 2-3 sentence explanation of what's probably going on. Use simple words. Start with something like 'Based on what you've told me...' or 'It sounds like...'",
  "affectedStructures": [
    {
      "structure": "Name of the body part (use everyday names like 'shoulder muscle' not 'deltoid')",
      "likelihood": "high|medium|low",
      "reasoning": "Simple explanation anyone can understand - why you think this part is involved"
    }
  ],
  "recommendedNextSteps": [
    "Practical tip 1 - something they can do right now",
    "Practical tip 2 - clear and actionable"
  ],
  "additionalTestsSuggested": [
    "A simple movement they could try to learn more"
  ],
  "redFlags": [
    "Any warning signs that mean they should see a doctor right away (leave empty if none)"
  ],
  "disclaimer": "A friendly reminder that this is just guidance, not medical advice"
}"""

TESTS_RESPONSE_FORMAT = """[
  {
    "id": "unique-test-id",
    "name": "Simple, descriptive name (e.g., 'Shoulder Reach Test' not 'Glenohumeral ROM Assessment')",
    "purpose": "Why this test helps - explained simply",
    "targetMuscles": ["Simple muscle names like 'shoulder muscles', 'back muscles'"],
    "instructions": [
      "Clear step 1 - like you're explaining to a friend",
      "Clear step 2 - simple language",
      "Clear step 3 - easy to follow"
    ],
    "duration": 15,
    "repetitions": 3,
    "whatToWatch": "What to pay attention to during the test - in plain English",
    "positiveIndicators": [
      "If you feel THIS, it might mean there's an issue (plain language)"
    ],
    "negativeIndicators": [
      "If you can do this without problems, that's a good sign"
    ]
  }
]"""


@dataclass
class GeminiRequest:
    prompt: str
    images: list[InlineImage] = field(default_factory=list)

    @property
    def has_images(self) -> bool:
        return bool(self.images)


def humanize_region(region: str) -> str:
    return region.replace("-", " ")


def summarize_markers(markers: list[PainMarker], include_view: bool = True) -> list[dict]:
    summary = []
    for m in markers:
        item: dict = {"region": humanize_region(m.region)}
        if include_view:
            item["view"] = m.body_view
        item["painType"] = m.pain_type
        item["intensity"] = m.intensity
        if include_view:
            item["hasImages"] = bool(m.images)
        if m.notes:
            item["notes"] = m.notes
        summary.append(item)
    return summary


def summarize_test_results(results: list[MovementTestResult]) -> list[dict]:
    summary = []
    for r in results:
        item: dict = {
            "test": r.test_name,
            "result": "Caused pain/issues" if r.is_positive else "Felt okay",
        }
        if r.notes:
            item["notes"] = r.notes
        item["hasImages"] = bool(r.images)
        summary.append(item)
    return summary


def collect_marker_images(markers: list[PainMarker]) -> list[InlineImage]:
    return [InlineImage(base64=img.base64, mime_type=img.mime_type) for m in markers for img in (m.images or [])]


def build_affected_muscles(markers: list[PainMarker]) -> list[AffectedMuscle]:
    """Primary muscles per marker region; a muscle hit by several markers is 'high'."""
    by_muscle: dict[str, list[str]] = {}
    for m in markers:
        mapping = get_muscles_for_region(m.region)
        if not mapping:
            continue
        for muscle in mapping.primary:
            by_muscle.setdefault(muscle, []).append(m.id)

    return [
        AffectedMuscle(muscle=muscle, confidence="high" if len(ids) > 1 else "medium", pain_markers=ids)
        for muscle, ids in by_muscle.items()
    ]


def _story_section(initial_story: str | None) -> str:
    if not initial_story:
        return ""
    return f'## What They Told Us\n"{initial_story}"\n\n'


def _context_section(context: UserContext | None) -> str:
    if not context:
        return ""
    history = ", ".join(context.relevant_history or []) or "None mentioned"
    return (
        "\n## About This Person\n"
        f"- Age: {context.age or 'Not shared'}\n"
        f"- How active they are: {context.activity_level or 'Not shared'}\n"
        f"- Past issues: {history}\n"
    )


def build_analysis_request(
    markers: list[PainMarker],
    test_results: list[MovementTestResult],
    context: UserContext | None = None,
    initial_story: str | None = None,
) -> GeminiRequest:
    images = collect_marker_images(markers)
    muscles = build_affected_muscles(markers)
    tests = summarize_test_results(test_results)

    photos = ""
    if images:
        photos = (
            "## Photos Provided\n"
            f"They've shared {len(images)} photo(s) showing where it hurts. Look at these to:\n"
            "1. See exactly where the pain is\n"
            "2. Notice any visible signs like swelling or redness\n"
            "3. Connect what you see with what they're describing\n\n"
        )

    muscle_lines = "\n".join(
        f"- {m.muscle} ({'very likely' if m.confidence == 'high' else 'possibly'} involved)" for m in muscles
    )
    test_block = json.dumps(tests, indent=2) if tests else "No movement tests done yet."

    prompt = (
        f"\n{SYSTEM_PROMPT}\n\n"
        "Please analyze this person's pain and give them helpful, easy-to-understand feedback.\n\n"
        f"{_story_section(initial_story)}{photos}"
        "## Where It Hurts\n"
        f"{json.dumps(summarize_markers(markers), indent=2)}\n\n"
        "## Muscles That Might Be Involved\n"
        f"{muscle_lines}\n\n"
        "## Movement Test Results\n"
        f"{test_block}\n\n"
        f"{_context_section(context)}\n"
        "Please respond in the following JSON format. Remember to use SIMPLE, EVERYDAY LANGUAGE - "
        "imagine you're explaining this to a friend who knows nothing about medicine:\n\n"
        f"{ANALYSIS_RESPONSE_FORMAT}\n\n"
        "Respond ONLY with the JSON object, no additional text."
    )
    return GeminiRequest(prompt=prompt, images=images)


def build_tests_request(markers: list[PainMarker], initial_story: str | None = None) -> GeminiRequest:
    images = collect_marker_images(markers)

    muscle_lines = []
    for m in markers:
        mapping = get_muscles_for_region(m.region)
        if mapping:
            muscle_lines.extend(f"- {muscle} ({humanize_region(m.region)})" for muscle in mapping.primary)

    photos = ""
    if images:
        photos = (
            "## Photos They Shared\n"
            f"They've provided {len(images)} photo(s) showing where it hurts. Use these to:\n"
            "1. See exactly where the pain is\n"
            "2. Notice any visible signs like swelling or redness\n"
            "3. Create tests that are relevant to what you see\n\n"
        )

    prompt = (
        "\nYou are a friendly AI physiotherapy assistant. Based on what this person told you about their pain"
        f"{' and the photos they shared' if images else ''}, create 3-5 simple movement tests they can do at home.\n\n"
        f"{_story_section(initial_story)}{photos}"
        "## Where It Hurts\n"
        f"{json.dumps(summarize_markers(markers), indent=2)}\n\n"
        "## Muscles That Might Be Involved\n"
        f"{chr(10).join(muscle_lines)}\n\n"
        "Create movement tests that:\n"
        "1. Are SAFE and easy to do at home with no equipment\n"
        "2. Help figure out what's causing the pain\n"
        "3. Start with gentle movements, then progress to more challenging ones\n"
        "4. Have CLEAR, SIMPLE instructions anyone can follow\n\n"
        "IMPORTANT: Use everyday language, not medical terms. Imagine you're explaining this to a friend.\n\n"
        "Return ONLY a JSON array with the following structure:\n"
        f"{TESTS_RESPONSE_FORMAT}\n\n"
        "Generate 3-5 tests. Respond ONLY with the JSON array, no additional text."
    )
    return GeminiRequest(prompt=prompt, images=images)


def build_follow_up_request(
    question: str,
    previous_analysis: GeminiPhysioResponse,
    markers: list[PainMarker],
    test_results: list[MovementTestResult],
    images: list[InlineImage] | None = None,
) -> GeminiRequest:
    images = list(images or [])
    count = len(images)
    plural = count > 1

    structures = "\n".join(
        f"- {s.structure} ({s.likelihood}): {s.reasoning}" for s in previous_analysis.affected_structures
    )
    tests = (
        "\n".join(f"- {t.test_name}: {'Positive' if t.is_positive else 'Negative'}" for t in test_results)
        if test_results
        else "None"
    )

    image_note = ""
    if images:
        image_note = (
            f"The patient has attached {count} image{'s' if plural else ''} showing their pain location or "
            f"affected body part. Please analyze {'all the images' if plural else 'the image'} in the context "
            "of their symptoms and provide relevant observations.\n\n"
        )

    prompt = (
        f"\n{SYSTEM_PROMPT}\n\n"
        "You previously provided this assessment for a patient:\n\n"
        "## Previous Assessment:\n"
        f"{previous_analysis.preliminary_assessment}\n\n"
        "## Affected Structures Identified:\n"
        f"{structures}\n\n"
        "## Pain Data:\n"
        f"{json.dumps(summarize_markers(markers, include_view=False), indent=2)}\n\n"
        "## Movement Tests Completed:\n"
        f"{tests}\n\n"
        f"{image_note}"
        "The patient has a follow-up question:\n"
        f'"{question}"\n\n'
        "Please provide a helpful, clear response. Remember to:\n"
        "1. Stay within your role as an AI physiotherapy assistant\n"
        "2. Recommend professional consultation when appropriate\n"
        "3. Be educational but not diagnostic\n"
        "4. Keep your response concise and actionable\n"
    )
    if images:
        prompt += f"5. Reference specific observations from {'each image' if plural else 'the image'} when relevant"
    return GeminiRequest(prompt=prompt, images=images)
