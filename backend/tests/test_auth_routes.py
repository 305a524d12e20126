from examgate.models.user_model import UserRole


def _account(email, **extra):
    return {"email": email, "password": "s3cret-pass", "full_name": "Binh Tran", **extra}


def test_registration_always_creates_a_student(client):
    res = client.post("/auth/register", json=_account("new@example.com", role="admin"))
    assert res.status_code == 201
    assert res.json()["role"] == "student"

    login = client.post("/auth/login", json={"email": "new@example.com", "password": "s3cret-pass"})
    assert login.status_code == 200
    assert login.json()["user"]["role"] == "student"


def test_admin_creates_teacher_accounts(client, seed, login_as):
    login_as(seed.user(UserRole.ADMIN))

    res = client.post("/auth/staff", json=_account("teacher@example.com", role="teacher"))
    assert res.status_code == 201
    assert res.json()["role"] == "teacher"

    again = client.post("/auth/staff", json=_account("teacher@example.com", role="teacher"))
    assert again.status_code == 400


def test_only_admins_create_staff(client, seed, login_as):
    for role in (UserRole.STUDENT, UserRole.TEACHER):
        login_as(seed.user(role))
        res = client.post("/auth/staff", json=_account(f"{role.value}-made@example.com", role="admin"))
        assert res.status_code == 403
