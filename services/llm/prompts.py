from typing import List, Optional

from models.interview import Message

TOPIC_CHECKLIST = ["Architecture", "Database", "Security", "Testing", "Performance"]

OPENING_INSTRUCTION = "Start the interview by asking the first question."

DEFAULT_OPENING_QUESTION = "Could you tell me about your project?"


def is_subject_practice(description: str, subject_name: Optional[str] = None) -> bool:
    return bool(subject_name) or description.strip().lower().startswith("subject:")


def project_system_prompt(title: str, description: str, link: Optional[str] = None) -> str:
    link_line = f"\nProject Link: {link}" if link else ""
    return f"""You are an expert technical interviewer conducting a project-based interview.
Project Title: {title}
Description: {description}{link_line}

Your goal is to assess the candidate's technical depth, problem-solving skills, and communication.
Start by asking a high-level question about the project overview or motivation.
Keep the question concise and professional. Ask exactly one question."""


def subject_system_prompt(title: str, description: str, subject_name: Optional[str] = None,
                          materials: str = "") -> str:
    subject = subject_name or description.split(":", 1)[-1].strip() or title
    materials_block = ""
    if materials:
        materials_block = f"""

The candidate uploaded the following study materials. Base your questions on them where possible:
---
{materials}
---"""
    return f"""You are an expert technical interviewer running a subject practice session.
Subject: {subject}
Session Title: {title}
Description: {description}{materials_block}

Your goal is to check the candidate's understanding of core concepts in this subject, from fundamentals
to applied problems. Start with a foundational question and keep it concise and professional.
Ask exactly one question."""


def interview_context(title: str, description: str, link: Optional[str] = None) -> str:
    context = f"Project: {title} - {description}"
    if link:
        context += f"\nLink: {link}"
    return context


def format_history(history: List[Message], include_feedback: bool = False) -> str:
    lines = []
    for message in history:
        entry = f"{message.role}: {message.content}"
        if include_feedback and message.feedback is not None:
            entry += f"\n[Evaluator Feedback: Rating {message.feedback.rating}/10. {message.feedback.explanation}]"
        lines.append(entry)
    return "\n".join(lines)


def analysis_prompt(history: List[Message], answer: str, context: str) -> str:
    asked = [m.content for m in history if m.role == "interviewer"]
    asked_block = "\n".join(f"- {q}" for q in asked) or "- (none)"
    topics = ", ".join(TOPIC_CHECKLIST)
    return f"""You are an expert technical interviewer.
{context}

History of the interview so far:
{format_history(history)}

Candidate's most recent answer: {answer}

TASK:
1. Analyze the candidate's answer.
2. Generate the NEXT question.

CRITICAL INSTRUCTION - NO DUPLICATES:
These questions have already been asked:
{asked_block}
You MUST NOT ask any question that is similar or identical to them.
If you are about to repeat one, choose a DIFFERENT topic or a follow-up question instead.

Output in JSON format ONLY:
{{
  "feedback": {{
    "rating": number (0-10),
    "explanation": "constructive feedback",
    "sample_answer": "better way to answer",
    "common_mistakes": "what to avoid"
  }},
  "next_question": "the next question to ask"
}}

Other Instructions:
1. Adapt difficulty based on the answer quality.
2. If the answer is weak, ask probing questions.
3. If strong, ask about trade-offs, scalability, or edge cases.
4. Cover topics: {topics}. Move to a topic not yet covered before revisiting one."""


def summary_prompt(history: List[Message]) -> str:
    return f"""Generate a final interview summary in JSON format ONLY based on this history.
The history includes the candidate's answers and the evaluator's immediate feedback/rating for each answer.
Use the ratings to calculate a precise Overall Score.

History:
{format_history(history, include_feedback=True)}

JSON Structure:
{{
  "overall_score": number (0-100),
  "strengths": ["list of strong points"],
  "weaknesses": ["list of weak points"],
  "revision_topics": ["list of topics to study"],
  "project_improvements": ["list of actionable improvements"]
}}"""
