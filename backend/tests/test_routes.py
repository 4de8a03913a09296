"""
HTTP boundary tests.

Errors map onto status codes with a plain {"error": message} body, and
authorization follows the caller's current role.
"""

from stockroom.models import Product, StockMovement, User
from stockroom.services import role_store

from conftest import PASSWORD, auth_headers


class TestAuthentication:
    def test_requires_credential(self, client, db_session):
        response = client.get('/api/products')
        assert response.status_code == 401
        assert response.json == {"error": "Authentication required"}

    def test_unknown_token(self, client, db_session):
        response = client.get('/api/products', headers=auth_headers("nope"))
        assert response.status_code == 401

    def test_sign_up_then_sign_in(self, client, db_session):
        response = client.post('/api/auth/sign-up/email', json={
            'name': 'New Clerk',
            'email': ' New.Clerk@Example.com ',
            'password': PASSWORD,
        })
        assert response.status_code == 201
        assert response.json['user']['email'] == 'new.clerk@example.com'

        response = client.post('/api/auth/sign-in/email', json={
            'email': 'new.clerk@example.com',
            'password': PASSWORD,
        })
        assert response.status_code == 200
        token = response.json['token']
        assert response.json['user']['name'] == 'New Clerk'
        set_cookie = response.headers.get('Set-Cookie')
        assert 'stockroom.session_token=' in set_cookie
        assert 'HttpOnly' in set_cookie

        response = client.get('/api/auth/get-session', headers=auth_headers(token))
        assert response.status_code == 200
        assert response.json['user']['role'] == role_store.DEFAULT_ROLE
        assert response.json['session']['expires_at'].endswith('Z')

    def test_duplicate_sign_up_is_conflict(self, client, regular_user):
        response = client.post('/api/auth/sign-up/email', json={
            'name': 'Again',
            'email': 'CLERK@example.com',
            'password': PASSWORD,
        })
        assert response.status_code == 409
        assert response.json == {"error": "Email already in use"}

    def test_weak_password_is_rejected(self, client, db_session):
        response = client.post('/api/auth/sign-up/email', json={
            'name': 'Weak',
            'email': 'weak@example.com',
            'password': 'short',
        })
        assert response.status_code == 400
        assert db_session.query(User).count() == 0

    def test_sign_in_with_wrong_password(self, client, regular_user):
        response = client.post('/api/auth/sign-in/email', json={
            'email': 'clerk@example.com',
            'password': 'WrongPassword1',
        })
        assert response.status_code == 401
        assert response.json == {"error": "Invalid email or password"}

    def test_sign_in_requires_fields(self, client, db_session):
        response = client.post('/api/auth/sign-in/email', json={'email': 'clerk@example.com'})
        assert response.status_code == 400

    def test_sign_out_revokes_session(self, client, user_token):
        response = client.post('/api/auth/sign-out', headers=auth_headers(user_token))
        assert response.status_code == 200
        assert response.json == {"signed_out": True}

        response = client.get('/api/auth/get-session', headers=auth_headers(user_token))
        assert response.json == {"session": None, "user": None}

        response = client.get('/api/products', headers=auth_headers(user_token))
        assert response.status_code == 401

    def test_sign_out_without_session(self, client, db_session):
        response = client.post('/api/auth/sign-out')
        assert response.status_code == 200

    def test_session_cookie_is_accepted(self, client, user_token):
        client.set_cookie('stockroom.session_token', user_token)
        response = client.get('/api/products')
        assert response.status_code == 200


class TestProducts:
    def test_create_and_read(self, client, user_token):
        response = client.post('/api/products', headers=auth_headers(user_token), json={
            'name': 'Bolt',
            'description': 'M6 bolt',
            'quantity': '40',
        })
        assert response.status_code == 201
        product_id = response.json['id']
        assert response.json['quantity'] == 40
        assert response.json['initial_quantity'] == 40

        response = client.get(f'/api/products/{product_id}', headers=auth_headers(user_token))
        assert response.status_code == 200
        assert response.json['name'] == 'Bolt'

    def test_create_rejects_unknown_field(self, client, user_token):
        response = client.post('/api/products', headers=auth_headers(user_token), json={
            'name': 'Bolt',
            'initial_quantity': 5,
        })
        assert response.status_code == 400

    def test_update_records_movement_for_caller(self, client, db_session, user_token, regular_user, product):
        response = client.put(
            f'/api/products/{product.id}',
            headers=auth_headers(user_token),
            json={'quantity': 4},
        )
        assert response.status_code == 200
        assert response.json['quantity'] == 4

        movement = db_session.query(StockMovement).filter_by(product_id=product.id).one()
        assert movement.direction == 'outbound'
        assert movement.quantity == 6
        assert movement.actor_user_id == regular_user.id

        response = client.get('/api/movements', headers=auth_headers(user_token))
        assert response.status_code == 200
        assert response.json['total_items'] == 1
        assert response.json['items'][0]['product_name'] == 'Widget'

    def test_negative_quantity_is_bad_request(self, client, db_session, user_token, product):
        response = client.put(
            f'/api/products/{product.id}',
            headers=auth_headers(user_token),
            json={'quantity': -3},
        )
        assert response.status_code == 400
        assert db_session.query(StockMovement).count() == 0

    def test_decimal_quantity_is_bad_request(self, client, user_token, product):
        response = client.put(
            f'/api/products/{product.id}',
            headers=auth_headers(user_token),
            json={'quantity': '12.5'},
        )
        assert response.status_code == 400

    def test_missing_product_is_not_found(self, client, user_token):
        response = client.put('/api/products/9999', headers=auth_headers(user_token), json={'quantity': 1})
        assert response.status_code == 404
        assert response.json == {"error": "Product not found"}

    def test_listing(self, client, db_session, user_token):
        for i in range(3):
            db_session.add(Product(name=f"P{i}", quantity=0, initial_quantity=0))
        db_session.commit()

        response = client.get('/api/products?page=2&limit=2', headers=auth_headers(user_token))
        assert response.status_code == 200
        assert response.json['current_page'] == 2
        assert response.json['total_items'] == 3
        assert response.json['total_pages'] == 2
        assert [item['name'] for item in response.json['items']] == ['P2']

    def test_reconcile(self, client, user_token, product):
        client.put(f'/api/products/{product.id}', headers=auth_headers(user_token), json={'quantity': 13})

        response = client.get(f'/api/products/{product.id}/reconcile', headers=auth_headers(user_token))
        assert response.status_code == 200
        assert response.json['consistent'] is True
        assert response.json['movement_count'] == 1

    def test_delete_requires_admin(self, client, db_session, user_token, product):
        response = client.delete(f'/api/products/{product.id}', headers=auth_headers(user_token))
        assert response.status_code == 403
        assert response.json == {"error": "Permission denied", "required_roles": ["admin"]}
        assert db_session.get(Product, product.id) is not None

    def test_admin_deletes_product_with_ledger(self, client, db_session, admin_token, product):
        client.put(f'/api/products/{product.id}', headers=auth_headers(admin_token), json={'quantity': 11})
        client.put(f'/api/products/{product.id}', headers=auth_headers(admin_token), json={'quantity': 9})
        product_id = product.id

        response = client.delete(f'/api/products/{product_id}', headers=auth_headers(admin_token))
        assert response.status_code == 200
        assert response.json['movements_deleted'] == 2

        response = client.delete(f'/api/products/{product_id}', headers=auth_headers(admin_token))
        assert response.status_code == 404


class TestUsers:
    def test_non_admin_is_forbidden(self, client, user_token):
        response = client.get('/api/users', headers=auth_headers(user_token))
        assert response.status_code == 403

    def test_role_change_applies_to_next_request(self, client, admin_token, user_token, regular_user):
        response = client.put(
            f'/api/users/{regular_user.id}/role',
            headers=auth_headers(admin_token),
            json={'role': 'admin'},
        )
        assert response.status_code == 200

        response = client.get('/api/users', headers=auth_headers(user_token))
        assert response.status_code == 200

        client.put(
            f'/api/users/{regular_user.id}/role',
            headers=auth_headers(admin_token),
            json={'role': 'user'},
        )
        response = client.get('/api/users', headers=auth_headers(user_token))
        assert response.status_code == 403

    def test_unknown_role_is_bad_request(self, client, admin_token, regular_user):
        response = client.put(
            f'/api/users/{regular_user.id}/role',
            headers=auth_headers(admin_token),
            json={'role': 'superuser'},
        )
        assert response.status_code == 400

    def test_update_user(self, client, admin_token, regular_user):
        response = client.put(
            f'/api/users/{regular_user.id}',
            headers=auth_headers(admin_token),
            json={'name': 'Senior Clerk', 'email': 'Senior@Example.com'},
        )
        assert response.status_code == 200
        assert response.json['email'] == 'senior@example.com'
        assert response.json['role'] == 'user'

    def test_update_user_requires_both_fields(self, client, admin_token, regular_user):
        response = client.put(
            f'/api/users/{regular_user.id}',
            headers=auth_headers(admin_token),
            json={'name': 'Only Name'},
        )
        assert response.status_code == 400

    def test_update_user_email_clash(self, client, admin_token, regular_user):
        response = client.put(
            f'/api/users/{regular_user.id}',
            headers=auth_headers(admin_token),
            json={'name': 'Clerk', 'email': 'admin@example.com'},
        )
        assert response.status_code == 409

    def test_delete_user_ends_their_sessions(self, client, admin_token, user_token, regular_user):
        response = client.delete(f'/api/users/{regular_user.id}', headers=auth_headers(admin_token))
        assert response.status_code == 200
        assert response.json['sessions_deleted'] == 1

        response = client.get('/api/products', headers=auth_headers(user_token))
        assert response.status_code == 401

    def test_cannot_delete_self(self, client, admin_token, admin_user):
        response = client.delete(f'/api/users/{admin_user.id}', headers=auth_headers(admin_token))
        assert response.status_code == 400


def test_health(client, db_session):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.json['checks']['database']['status'] == 'healthy'


def test_cors_for_allowed_origin(client, db_session):
    response = client.get('/health', headers={'Origin': 'http://localhost:3000'})
    assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:3000'
    assert response.headers['Access-Control-Allow-Credentials'] == 'true'

    response = client.get('/health', headers={'Origin': 'http://evil.example'})
    assert 'Access-Control-Allow-Origin' not in response.headers
