"""Script to create the initial admin user and one worker per department."""
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from goldworks.config import get_settings
from goldworks.database import build_engine, build_session_factory, init_db
from goldworks.models.department import DEPARTMENT_DISPLAY_NAMES, DEPARTMENT_ORDER
from goldworks.models.user import User, UserRole


def create_admin():
    """Create initial admin and department workers if they do not exist."""
    settings = get_settings()
    engine = build_engine(settings.DATABASE_URL)
    # Create tables
    init_db(engine)

    db = build_session_factory(engine)()
    try:
        admin = db.query(User).filter(User.role == UserRole.ADMIN).first()
        if admin:
            print(f"Admin user already exists: {admin.email} (id {admin.id})")
        else:
            admin = User(
                name="System Administrator",
                email="admin@example.com",
                role=UserRole.ADMIN,
                is_active=True
            )
            db.add(admin)

        for department in DEPARTMENT_ORDER:
            email = f"{department.value.lower()}@example.com"
            if db.query(User).filter(User.email == email).first():
                continue
            db.add(User(
                name=f"{DEPARTMENT_DISPLAY_NAMES[department]} Worker",
                email=email,
                role=UserRole.DEPARTMENT_WORKER,
                department=department.value,
                is_active=True
            ))

        db.commit()
        db.refresh(admin)
        print("Users ready.")
        print(f"Admin id: {admin.id}")
        print("\nSend it as the X-User-Id header to call the API as admin.")

    finally:
        db.close()


if __name__ == "__main__":
    create_admin()
