from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from examgen.schemas import (
    AIMentorRequest,
    CreateQuestionRequest,
    CurrentAffairsRequest,
    CustomTestRequest,
    DailyMotivationRequest,
    MockTestRequest,
    NCERTTestRequest,
    TypingAnalysisRequest,
)

STATE_EXAM_MARKERS = ("state", "jssc", "bpsc", "police")

BILINGUAL_RULE = (
    "EVERY text field ('questionText', all 'options', 'answer', 'explanation', 'subject', 'topic') "
    "MUST be bilingual in the format: 'English Text / हिंदी टेक्स्ट'. This is non-negotiable."
)

QUESTION_SHAPE = (
    "Each question object must have: 'questionText', an array of exactly 4 distinct 'options', "
    "a correct 'answer' copied verbatim from the options, an 'explanation', the 'subject', "
    "the 'topic', and a 'difficulty' ('Easy', 'Medium' or 'Hard')."
)

RAW_JSON_RULE = (
    "Your entire response MUST be a single, raw, valid JSON object. It MUST start with '{' and end "
    "with '}'. Do NOT include any extra text, markdown or apologies."
)


@dataclass(frozen=True)
class Prompt:
    system: str
    user: str
    image_url: Optional[str] = None


def _quoted(items: list[str]) -> str:
    return ", ".join(f"'{item}'" for item in items)


def is_state_exam(category: str) -> bool:
    lowered = category.lower()
    return any(marker in lowered for marker in STATE_EXAM_MARKERS)


def _difficulty_mix(accuracy: Optional[float]) -> str:
    if accuracy is None:
        return "- Default Mix: 30% Easy, 50% Medium, 20% Hard."
    if accuracy > 75:
        mix = "40% Hard, 50% Medium, 10% Easy"
    elif accuracy < 40:
        mix = "40% Easy, 50% Medium, 10% Hard"
    else:
        mix = "30% Easy, 50% Medium, 20% Hard"
    return f"- Adjust Difficulty: the user's accuracy is {accuracy:g}%. Use this mix: {mix}."


def _adaptive_rules(request: MockTestRequest) -> str:
    if request.practiceWeakTopics and request.weakTopics:
        return f"- WEAK TOPIC PRACTICE MODE: generate questions ONLY from these weak topics: {_quoted(request.weakTopics)}."

    lines = []
    if request.weakTopics:
        lines.append(
            f"- Prioritize Weak Topics: the user's weak topics are {_quoted(request.weakTopics)}. "
            "Include more questions from these topics."
        )
    lines.append(_difficulty_mix(request.overallAccuracy))
    return "\n".join(lines)


def _exam_rules(request: MockTestRequest) -> str:
    if is_state_exam(request.category):
        return "- State-Specific Content: ensure 25-30% of questions cover the General Knowledge of the relevant state."
    return f"- Central Exam Content: this is a central exam ({request.exam}); do NOT include state-specific GK."


def _year_rule(year: Optional[int]) -> str:
    if year is None:
        return "Follow the latest exam pattern."
    return (
        f"Question style and difficulty MUST simulate the exam trend of {year}, "
        "using the previous-year-question trend of the 25 years leading up to it."
    )


MOCK_TEST_SYSTEM = """You are an Indian competitive exam question generator. Create high-quality, original and ADAPTIVE mock test questions with 100% accuracy.

Request ID: {seed}. This is a unique, one-time request. Do NOT use cached data.

1. Exam & Subject Focus:
- Exam: {exam}
- Subject(s): {subjects}
- Year Pattern: {year_rule}
- All questions must be of Previous Year Question (PYQ) level and relevant to the exam and subject. No trivial questions.

2. Originality: create completely new questions. Concepts and difficulty may follow PYQs but language, values and scenarios MUST be unique. Do NOT repeat questions.

3. Formatting:
- {raw_json}
- The object must have a single key "questions" holding an array of question objects.
- {bilingual}
- {shape}

4. Adaptive Learning:
{adaptive}

5. Exam-Specific Instructions:
{exam_rules}

If you cannot generate proper questions, return {{"questions": []}}.
"""


def build_mock_test_prompt(request: MockTestRequest) -> Prompt:
    system = MOCK_TEST_SYSTEM.format(
        seed=request.seed,
        exam=request.exam,
        subjects=", ".join(request.subjects),
        year_rule=_year_rule(request.year),
        raw_json=RAW_JSON_RULE,
        bilingual=BILINGUAL_RULE,
        shape=QUESTION_SHAPE,
        adaptive=_adaptive_rules(request),
        exam_rules=_exam_rules(request),
    )
    user = f"Generate the mock test with exactly {request.questionCount} questions now for the exam: {request.exam}."
    return Prompt(system=system, user=user)


def build_custom_test_prompt(request: CustomTestRequest) -> Prompt:
    system = (
        "You are an expert question generator for Indian competitive exams. Create a focused, "
        "high-quality practice test on a single topic. Accuracy is paramount.\n\n"
        f"Request ID: {request.seed}. This is a unique request. Do not use cached data.\n\n"
        f"Generate EXACTLY {request.questionCount} multiple-choice questions. "
        f"All questions MUST be strictly about the topic '{request.topic}' within the subject '{request.subject}'. "
        "Re-verify every question, answer and explanation against NCERT or standard reference books before answering. "
        "Language, numbers, names and scenarios must be original.\n"
        f"{BILINGUAL_RULE}\n{QUESTION_SHAPE}\n"
        'Return an object with a single key "questions".\n'
        f"{RAW_JSON_RULE}"
    )
    user = f'Generate the {request.questionCount}-question test for Subject: "{request.subject}", Topic: "{request.topic}" now.'
    return Prompt(system=system, user=user)


def build_current_affairs_prompt(request: CurrentAffairsRequest) -> Prompt:
    system = (
        "You are an expert news analyst writing quizzes for Indian competitive exam aspirants "
        "(SSC, Banking, Railways, State PSCs).\n\n"
        f"Request ID: {request.seed}. This is a unique request. Do not use cached data.\n\n"
        f"For the date {request.date}, identify the 10 most important national and international headlines "
        "relevant to exam aspirants, then write EXACTLY 10 multiple-choice questions about them. "
        "Questions must cover events, appointments, schemes, awards or reports from that date or the day before. "
        "Each explanation must give context about the news event.\n"
        f"{BILINGUAL_RULE} For subject and topic use 'Current Affairs / समसामयिकी'.\n"
        f"{QUESTION_SHAPE}\n"
        'Return an object with a single key "questions".\n'
        f"{RAW_JSON_RULE}"
    )
    user = f"Generate the 10-question Current Affairs quiz for the date: {request.date}."
    return Prompt(system=system, user=user)


def build_ncert_prompt(request: NCERTTestRequest) -> Prompt:
    system = (
        "You are an expert question generator specialising in Indian NCERT textbooks.\n\n"
        f"Request ID: {request.seed}. This is a unique request. Do not use cached data.\n\n"
        "Generate EXACTLY 15 multiple-choice questions from the specified NCERT chapter.\n"
        f"- Class: {request.selectedClass}\n"
        f"- Subject: {request.subject}\n"
        f"- Chapter: {request.chapter}\n"
        "Your ONLY source is the official NCERT text for this chapter; do not invent facts. "
        "Explanations must be concise and reference the chapter (e.g. 'As explained in section 3.2...').\n"
        "Each question needs 'questionText', exactly 4 distinct 'options', an 'answer' copied verbatim "
        "from the options, an 'explanation' and a 'difficulty' ('Easy', 'Medium' or 'Hard').\n"
        "EVERY text field MUST be bilingual: 'English Text / हिंदी टेक्स्ट'.\n"
        'Return an object with a single key "questions".\n'
        f"{RAW_JSON_RULE}"
    )
    user = f'Generate the 15-question test for {request.selectedClass} {request.subject}, Chapter: "{request.chapter}" now.'
    return Prompt(system=system, user=user)


def build_create_question_prompt(request: CreateQuestionRequest) -> Prompt:
    system = (
        "You convert a user's raw question (text and/or image) for an Indian competitive exam into a "
        "complete, structured question object.\n"
        "Return one JSON object with: 'questionText', exactly 4 plausible 'options' (one correct), "
        "'answer' copied verbatim from the options, an 'explanation' in your own words with 2-3 related facts, "
        "'subject', 'topic' and 'difficulty' ('Easy', 'Medium' or 'Hard') based on PYQ analysis.\n"
        "Re-verify the answer and explanation before finalising. For maths and reasoning use original numbers. "
        "Style and format must match the last 25 years of official papers (SSC, JPSC, BPSC).\n"
        f"{BILINGUAL_RULE}\n{RAW_JSON_RULE}"
    )
    user = f"User's raw question:\nText: {request.questionText}"
    if request.imageDataUri:
        user += "\nAn image of the question is attached."
    return Prompt(system=system, user=user, image_url=request.imageDataUri)


def build_motivation_prompt(request: DailyMotivationRequest) -> Prompt:
    system = (
        "You are Soni, a motivation coach for students in India preparing for government exams "
        "like SSC, JSSC, UPSC and Railways. Write a powerful, original 2-line motivational quote or shayari "
        "in conversational Hinglish. Be impactful, not generic.\n"
        'Return a JSON object: {"quote": "<two lines>"}.'
    )
    user = "Generate a new, unique motivational quote for a student"
    user += f" named {request.name}." if request.name else "."
    return Prompt(system=system, user=user)


def build_ai_mentor_prompt(request: AIMentorRequest) -> Prompt:
    system = (
        "You are Soni, an expert mentor for students preparing for competitive exams in India "
        "(SSC, JSSC, BPSC, UPSC, Railways). A user has a doubt; give a clear, concise, accurate answer.\n"
        "- For a General Studies fact, add context and related information.\n"
        "- For a Maths or Reasoning problem, give the step-by-step solution and the trick involved.\n"
        "- For a general query, be encouraging and supportive.\n"
        "Answer in conversational Hinglish (a mix of Hindi and English).\n"
        'Return a JSON object: {"answer": "<your answer>"}.'
    )
    return Prompt(system=system, user=f"User's Question: '{request.question}'")


def build_typing_analysis_prompt(request: TypingAnalysisRequest) -> Prompt:
    system = (
        "You are an encouraging typing coach for students preparing for competitive exams in India (JSSC, SSC). "
        "Analyse the user's performance from the WPM and accuracy given. Provide one line of personalised "
        "feedback and 2-3 specific, actionable tips. If accuracy is low, suggest avoiding mistakes before "
        "chasing speed; if WPM is low, suggest practising common words.\n"
        'Return a JSON object: {"feedback": "<one line>", "tips": ["<tip>", "<tip>"]}.'
    )
    user = (
        "User's Performance:\n"
        f"- Words Per Minute (WPM): {request.wpm:g}\n"
        f"- Accuracy: {request.accuracy:g}%"
    )
    return Prompt(system=system, user=user)
