from typing import Dict, Any, Tuple, List


def grade_submission(answers: Dict[str, Any], questions: List[Any]) -> Tuple[Dict[str, int], int]:
    """
    Grade the given answers against the provided questions.
    - answers: mapping question_id (str or uuid) -> selected option id (or None)
    - questions: list of ORM Question objects (must have id, marks and options with id / is_correct)

    Returns (question_scores: dict, total_score: int)
    A question scores its marks only when the selected option is flagged correct.
    Unanswered questions score 0.
    """
    question_scores: Dict[str, int] = {}
    total = 0

    # Normalize answer keys and values to strings
    selected = {str(k): (str(v) if v is not None else None) for k, v in answers.items()}

    for q in questions:
        qid_str = str(q.id)
        choice = selected.get(qid_str)
        score = 0
        if choice is not None:
            correct_ids = {str(o.id) for o in q.options if o.is_correct}
            if choice in correct_ids:
                score = int(q.marks or 0)
        question_scores[qid_str] = score
        total += score

    return question_scores, total


def max_score(questions: List[Any]) -> int:
    return sum(int(q.marks or 0) for q in questions)
