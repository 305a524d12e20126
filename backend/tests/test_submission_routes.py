import uuid

from examgate.models.user_model import UserRole
from examgate.services import submission_service


def _submit(client, exam, answers, assignment=None, minutes=3.5):
    payload = {
        "exam_id": str(exam.id),
        "answers": answers,
        "time_spent_minutes": minutes,
        "assignment_id": str(assignment.id) if assignment else None,
    }
    return client.post("/api/quiz-results", json=payload)


def _setup(seed, login_as, correct, duration=30):
    student = login_as(seed.user())
    questions = seed.questions(correct)
    exam = seed.exam(questions, duration=duration)
    assignment = seed.assignment(exam, student)
    return student, questions, exam, assignment


def test_second_submission_is_rejected_as_duplicate(client, seed, login_as):
    student, _, exam, assignment = _setup(seed, login_as, [1, 0], duration=1)

    res = _submit(client, exam, [1, 0], assignment)
    assert res.status_code == 201
    body = res.json()
    assert body["score"] == 10.0
    assert body["correct_count"] == 2
    assert body["total_questions"] == 2
    assert body["student_id"] == str(student.id)

    again = _submit(client, exam, [1, 0], assignment)
    assert again.status_code == 409
    assert again.json()["detail"]["reason"] == "duplicate"

    mine = client.get("/api/quiz-results").json()
    assert mine["total"] == 1


def test_scores_partial_answers_with_out_of_range_option(client, seed, login_as):
    _, _, exam, assignment = _setup(seed, login_as, [0, 1, 2, 3])

    res = _submit(client, exam, [0, 1, 9, 3], assignment)
    assert res.status_code == 201
    assert res.json()["score"] == 7.5
    assert res.json()["correct_count"] == 3


def test_score_is_rounded_to_two_decimals(client, seed, login_as):
    _, _, exam, assignment = _setup(seed, login_as, [0, 0, 0])

    res = _submit(client, exam, [0, 0, -1], assignment)
    assert res.status_code == 201
    assert res.json()["score"] == 6.67


def test_missing_assignment_is_rejected_whatever_the_answers(client, seed, login_as):
    _, _, exam, _ = _setup(seed, login_as, [1, 0])

    for answers in ([1, 0], [-1, -1], [0]):
        res = _submit(client, exam, answers, assignment=None)
        assert res.status_code == 400
        assert res.json()["detail"]["reason"] == "missing-assignment"


def test_all_unanswered_is_rejected_and_nothing_stored(client, seed, login_as):
    _, _, exam, assignment = _setup(seed, login_as, [1, 0])

    res = _submit(client, exam, [-1, -1], assignment)
    assert res.status_code == 400
    assert res.json()["detail"]["reason"] == "empty"

    check = client.get(f"/api/quiz-results/{exam.id}/check", params={"assignment_id": str(assignment.id)})
    assert check.json() == {"completed": False, "result": None}


def test_unknown_exam_is_not_found(client, seed, login_as):
    login_as(seed.user())
    res = client.post(
        "/api/quiz-results",
        json={"exam_id": str(uuid.uuid4()), "answers": [0], "assignment_id": str(uuid.uuid4())},
    )
    assert res.status_code == 404
    assert res.json()["detail"]["reason"] == "not-found"


def test_answer_count_must_match_question_count(client, seed, login_as):
    _, _, exam, assignment = _setup(seed, login_as, [1, 0, 2])

    res = _submit(client, exam, [1, 0], assignment)
    assert res.status_code == 400
    assert res.json()["detail"]["reason"] == "mismatch"


def test_assignment_of_another_student_is_not_found(client, seed, login_as):
    other = seed.user(student_code="S002")
    questions = seed.questions([0])
    exam = seed.exam(questions)
    foreign = seed.assignment(exam, other)
    login_as(seed.user())

    res = _submit(client, exam, [0], foreign)
    assert res.status_code == 404
    assert res.json()["detail"]["reason"] == "not-found"


def test_missing_question_is_skipped_when_grading(client, seed, login_as):
    _, questions, exam, assignment = _setup(seed, login_as, [0, 1, 2])
    seed.delete_question(questions[1].id)

    res = _submit(client, exam, [0, 2], assignment)
    assert res.status_code == 201
    body = res.json()
    assert body["total_questions"] == 2
    assert body["correct_count"] == 2
    assert body["score"] == 10.0


def test_unique_constraint_decides_a_race(client, seed, login_as, monkeypatch):
    _, _, exam, assignment = _setup(seed, login_as, [1, 0])
    assert _submit(client, exam, [1, 0], assignment).status_code == 201

    # the second request passed its pre-check before the first one committed
    async def no_result_yet(*args, **kwargs):
        return None

    monkeypatch.setattr(submission_service, "find_result", no_result_yet)
    res = _submit(client, exam, [0, 1], assignment)
    assert res.status_code == 409
    assert res.json()["detail"]["reason"] == "duplicate"


def test_result_keeps_a_snapshot_of_the_profile(client, seed, login_as):
    student = login_as(seed.user(full_name="Binh Tran", student_code="S777", class_name="11B2"))
    questions = seed.questions([0])
    exam = seed.exam(questions)
    assignment = seed.assignment(exam, student)

    body = _submit(client, exam, [0], assignment).json()
    assert body["full_name"] == "Binh Tran"
    assert body["student_code"] == "S777"
    assert body["class_name"] == "11B2"
    assert body["gender"] == "female"
    assert body["time_spent_minutes"] == 3.5


def test_completion_check(client, seed, login_as):
    _, _, exam, assignment = _setup(seed, login_as, [1, 0])
    url = f"/api/quiz-results/{exam.id}/check"

    assert client.get(url, params={"assignment_id": str(assignment.id)}).json()["completed"] is False
    # no assignment: nothing definitive to report
    assert client.get(url).json()["completed"] is False

    _submit(client, exam, [1, -1], assignment)
    status = client.get(url, params={"assignment_id": str(assignment.id)}).json()
    assert status["completed"] is True
    assert status["result"]["score"] == 5.0


def test_teachers_cannot_submit(client, seed, login_as):
    student = seed.user()
    questions = seed.questions([0])
    exam = seed.exam(questions)
    assignment = seed.assignment(exam, student)
    login_as(seed.user(role=UserRole.TEACHER))

    res = _submit(client, exam, [0], assignment)
    assert res.status_code == 403


def test_teacher_lists_and_filters_exam_results(client, seed, login_as):
    questions = seed.questions([0, 1])
    exam = seed.exam(questions)
    for code, name, answers in (("S001", "An Nguyen", [0, 1]), ("S002", "Binh Tran", [0, 0])):
        student = login_as(seed.user(student_code=code, full_name=name))
        assignment = seed.assignment(exam, student)
        assert _submit(client, exam, answers, assignment).status_code == 201

    login_as(seed.user(role=UserRole.TEACHER))
    page = client.get(f"/api/quiz-results/exam/{exam.id}").json()
    assert page["total"] == 2

    filtered = client.get(f"/api/quiz-results/exam/{exam.id}", params={"search": "binh"}).json()
    assert filtered["total"] == 1
    assert filtered["items"][0]["student_code"] == "S002"

    top = client.get(f"/api/quiz-results/exam/{exam.id}", params={"min_score": 10}).json()
    assert [r["student_code"] for r in top["items"]] == ["S001"]

    export = client.get(f"/api/quiz-results/exam/{exam.id}/export")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("application/vnd.openxmlformats")
    assert "Results_Algebra_quiz_" in export.headers["content-disposition"]


def test_completed_at_is_sent_as_utc(client, seed, login_as):
    _, _, exam, assignment = _setup(seed, login_as, [0])
    _submit(client, exam, [0], assignment)

    # read back from the database, where SQLite drops the offset
    listed = client.get("/api/quiz-results").json()["items"][0]
    assert listed["completed_at"].endswith(("Z", "+00:00"))


def test_teacher_summary_counts_results_of_own_exams(client, seed, login_as):
    teacher = seed.user(role=UserRole.TEACHER)
    mine = seed.exam(seed.questions([0]), created_by=teacher.id)
    other = seed.exam(seed.questions([0]), title="Geometry quiz")
    for exam in (mine, mine, other):
        student = login_as(seed.user())
        assert _submit(client, exam, [0], seed.assignment(exam, student)).status_code == 201

    login_as(teacher)
    assert client.get("/api/quiz-results/summary/my").json() == {"total_results": 2}

    login_as(seed.user())
    assert client.get("/api/quiz-results/summary/my").status_code == 403
