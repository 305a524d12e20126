from fastapi import Depends, HTTPException, status, Request
from examgate.models.user_model import User, UserRole
from .security import current_active_user


def current_user_has_role(*allowed_roles: UserRole):
    async def current_user_contains_role(user: User = Depends(current_active_user)):
        if user.role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Operation not permitted",
            )
        return user
    return current_user_contains_role


current_admin = current_user_has_role(UserRole.ADMIN)
current_teacher = current_user_has_role(UserRole.TEACHER, UserRole.ADMIN)
current_student = current_user_has_role(UserRole.STUDENT)


async def users_router_permission(request: Request, user: User = Depends(current_active_user)):
    method = request.method.upper()
    # students complete their own profile before they may sit an exam
    if method == "PATCH" and request.url.path.rstrip("/").endswith("/users/me"):
        return True
    # Admin-only methods
    if method in ("POST", "PUT", "PATCH", "DELETE"):
        if user.role != UserRole.ADMIN:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Operation not permitted")
    return True
