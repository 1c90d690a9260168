"""Prompt templates for AI grading.

System instructions and user prompts for the three AI calls the practice
service makes: grading a test against a photographed answer key, explaining
a single mistake, and generating a practice test on a topic.
"""

import json
from typing import Mapping

GRADING_SYSTEM_PROMPT = """You are an expert assistant for analyzing JEE Main exam results.
You will be given an image of an answer key, a JSON object of the student's answers, a JSON
object of the time spent per question, and the exam syllabus.

Your task:
1. Grade the exam. Extract the correct answers from the image and compare them with the
   student's answers. Score with the JEE Main scheme: +4/-1 for MCQs, +4/0 for numericals,
   0 for unattempted questions. Options may be written as 1-4 or A-D; treat 1=A, 2=B, 3=C, 4=D.
2. Analyze timing. Total the time spent on Physics, Chemistry and Maths.
3. Analyze mistakes by syllabus. Map each incorrect question number to its chapter from the
   syllabus, count correct and incorrect answers per chapter and compute accuracy (0-100).
4. Suggest improvements. Write one concise, actionable paragraph based on score, timing and
   weak chapters.

Your ENTIRE response must be a single valid JSON object with no other text or markdown."""

MISTAKE_SYSTEM_PROMPT = """You are a master JEE tutor. A student has uploaded an image of a question
they got wrong and a short description of their error.

Respond with a single JSON object with two keys:
1. "topic": a very specific, short topic name for the question
   (e.g. "Moment of Inertia of a Cone", "SN2 Reaction Mechanism").
2. "explanation": a step-by-step explanation. State the core concept, identify the student's
   likely error from their description, then give the correct method. Markdown is allowed
   inside the explanation string."""

PRACTICE_TEST_SYSTEM_PROMPT = """You are an experienced JEE question setter. Write original practice
questions for the requested topic and difficulty. Multiple-choice questions have exactly four
options and exactly one correct option, given as a letter A-D. Numerical questions have no
options and a numeric answer. Number the questions from 1."""

TEST_ANALYSIS_FORMAT = {
    "score": "number",
    "totalMarks": "number",
    "correctQuestionNumbers": "number[]",
    "incorrectQuestionNumbers": "number[]",
    "unattemptedQuestionNumbers": "number[]",
    "subjectTimings": {"PHYSICS": "seconds", "CHEMISTRY": "seconds", "MATHS": "seconds"},
    "chapterScores": {
        "Chapter Name from Syllabus": {
            "correct": "number",
            "incorrect": "number",
            "accuracy": "number (0-100)",
        }
    },
    "aiSuggestions": "string",
}

MISTAKE_ANALYSIS_FORMAT = {"topic": "string", "explanation": "string"}

PRACTICE_TEST_FORMAT = {
    "questions": [
        {"number": "number", "text": "string", "options": "string[]", "type": "MCQ | NUM"}
    ],
    "answers": {"<question number>": "string"},
}


def build_grading_prompt(
    user_answers: Mapping[str, str],
    timings: Mapping[str, float],
    syllabus: str,
) -> str:
    """Build the user prompt for grading against an answer-key image."""
    return (
        f"Student's Answers: {json.dumps(dict(user_answers), sort_keys=True)}\n"
        f"Time per Question (seconds): {json.dumps(dict(timings), sort_keys=True)}\n"
        f"Exam Syllabus: {syllabus}\n\n"
        "Analyze the provided answer key image and the student's data. "
        "Return the full analysis in the specified JSON format."
    )


def build_mistake_prompt(description: str) -> str:
    """Build the user prompt for explaining a single mistake."""
    return (
        f'Student\'s description of mistake: "{description}". '
        "Please analyze the attached question image and provide the analysis "
        "in the specified JSON format."
    )


def build_practice_test_prompt(topic: str, num_questions: int, difficulty: str) -> str:
    """Build the user prompt for generating a practice test."""
    return (
        f"Topic: {topic}\n"
        f"Number of questions: {num_questions}\n"
        f"Difficulty: {difficulty}\n\n"
        "Return the questions and an answer key keyed by question number."
    )
