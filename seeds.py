from rentalhub import create_app
from rentalhub.models.store import Store
from rentalhub.utils.constants import Role
from rentalhub.utils.security import generate_hash


def ensure_user(store: Store, username: str, password: str, role: str):
    """
    Ensure a user with `username` exists in the store.
    - If exists: update password hash and role (idempotent).
    - If not:   create a new user.
    """
    u = store.find_user(username)
    if u:
        u["password_hash"] = generate_hash(password)
        u["role"] = role
        return u["user_id"]
    else:
        return store.create_user(username, generate_hash(password), role)


def main():
    app = create_app()
    with app.app_context():
        store = app.extensions["rentalhub"].store

        # ---- Admin / Vendor / Customer demo accounts ----
        ensure_user(store, "admin", "Admin123", Role.ADMIN)
        vendor_id = ensure_user(store, "vendor", "Vendor123", Role.VENDOR)
        ensure_user(store, "customer", "Customer123", Role.CUSTOMER)

        # ---- Demo products (create only if none exist) ----
        if not store.products:
            store.create_product({
                "owner_id": vendor_id, "title": "Canon EOS R6 Camera", "per_day": 45,
                "description": "Full-frame mirrorless body with a 24-105mm lens.",
            })
            store.create_product({
                "owner_id": vendor_id, "title": "Cordless Drill Set", "per_day": 12,
                "description": "18V drill with two batteries and a bit set.",
            })
            store.create_product({
                "owner_id": vendor_id, "title": "Camping Tent (4 person)", "per_day": 20,
                "description": "Waterproof dome tent, packs small.",
            })

        store.save()

        print("Seed complete.")
        print("Admin login:     admin / Admin123")
        print("Vendor login:    vendor / Vendor123")
        print("Customer login:  customer / Customer123")


if __name__ == "__main__":
    main()
