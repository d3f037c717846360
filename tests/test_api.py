"""API tests for the HTTP routers."""

from datetime import timedelta

import pytest

from inventario.models.enums import Rol
from inventario.models.user import User, UserRole
from inventario.utils.authentication import create_access_token, hash_password


@pytest.fixture
def login_user(db):
    """Almacenero with a real bcrypt password."""
    user = User(
        nombre="Lucía Login",
        email="lucia@josafat.com",
        passwd=hash_password("clave-segura-1"),
    )
    db.add(user)
    db.flush()
    db.add(UserRole(id_usuario=user.id, rol=Rol.ALMACENERO.value))
    db.commit()
    db.refresh(user)
    return user


class TestAuth:
    """Login and profile endpoints."""

    def test_login_and_profile(self, client, login_user):
        response = client.post(
            "/auth/login",
            data={"username": "LUCIA@josafat.com", "password": "clave-segura-1"},
        )
        assert response.status_code == 200
        token = response.json()["access_token"]

        perfil = client.get("/auth/perfil", headers={"Authorization": f"Bearer {token}"})

        assert perfil.status_code == 200
        assert perfil.json()["email"] == "lucia@josafat.com"
        assert perfil.json()["roles"] == ["almacenero"]

    def test_wrong_password(self, client, login_user):
        response = client.post(
            "/auth/login",
            data={"username": "lucia@josafat.com", "password": "otra-clave"},
        )
        assert response.status_code == 401

    def test_missing_token(self, client):
        assert client.get("/materiales/").status_code == 401

    def test_expired_token(self, client, admin_user):
        token = create_access_token({"sub": str(admin_user.id)}, timedelta(minutes=-1))
        response = client.get("/materiales/", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_inactive_user_is_rejected(self, client, db, admin_user, auth_headers):
        headers = auth_headers(admin_user)
        admin_user.activo = False
        db.add(admin_user)
        db.commit()

        assert client.get("/materiales/", headers=headers).status_code == 403

    def test_role_registry_down_is_503(self, client, engine, admin_user, auth_headers):
        """Roles that cannot be read reject the request instead of granting nothing."""
        headers = auth_headers(admin_user)
        with engine.begin() as conn:
            conn.exec_driver_sql("DROP TABLE usuario_roles")

        response = client.get("/materiales/", headers=headers)

        assert response.status_code == 503
        assert response.json()["error_code"] == "AUTH_UNAVAILABLE"
        assert response.json()["retryable"] is True


class TestMaterialsApi:
    """Material endpoints."""

    def test_create_and_get(self, client, almacenero_user, auth_headers):
        headers = auth_headers(almacenero_user)
        response = client.post(
            "/materiales/",
            json={
                "codigo": "bot 010",
                "nombre": "Botones nácar",
                "unidad": "unidades",
                "stock": "500",
                "stock_minimo": "100",
                "precio": "0.15",
            },
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["codigo"] == "BOT010"
        assert body["bajo_stock"] is False
        assert "version" not in body

        detalle = client.get(f"/materiales/{body['id']}", headers=headers)
        assert detalle.status_code == 200
        assert detalle.json()["nombre"] == "Botones nácar"

    def test_duplicate_code_returns_409(self, client, admin_user, tela, auth_headers):
        response = client.post(
            "/materiales/",
            json={"codigo": "tel-001", "nombre": "Tela", "unidad": "metros"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_CODE"
        assert response.json()["retryable"] is False

    def test_viewer_cannot_create(self, client, produccion_user, auth_headers):
        response = client.post(
            "/materiales/",
            json={"codigo": "X-1", "nombre": "X", "unidad": "u"},
            headers=auth_headers(produccion_user),
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"

    def test_patch_rejects_stock(self, client, admin_user, tela, auth_headers):
        response = client.patch(
            f"/materiales/{tela.id}", json={"stock": "1000"}, headers=auth_headers(admin_user)
        )

        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_INPUT"

    def test_patch_metadata(self, client, admin_user, tela, auth_headers):
        response = client.patch(
            f"/materiales/{tela.id}",
            json={"stock_minimo": "200"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 200
        assert response.json()["bajo_stock"] is True

    def test_list_and_missing(self, client, produccion_user, tela, hilo, auth_headers):
        headers = auth_headers(produccion_user)

        listado = client.get("/materiales/", params={"bajo_stock": True}, headers=headers)
        assert listado.json()["total"] == 1
        assert listado.json()["data"][0]["codigo"] == "HIL-002"

        missing = client.get("/materiales/999", headers=headers)
        assert missing.status_code == 404
        assert missing.json()["error_code"] == "MATERIAL_NOT_FOUND"

    def test_delete(self, client, admin_user, tela, auth_headers):
        response = client.delete(f"/materiales/{tela.id}", headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert response.json()["codigo"] == "TEL-001"

    def test_conciliacion(self, client, produccion_user, tela, auth_headers):
        response = client.get(
            f"/materiales/{tela.id}/conciliacion", headers=auth_headers(produccion_user)
        )

        assert response.status_code == 200
        assert response.json()["consistente"] is True
        assert response.json()["movimientos"] == 0


class TestMovementsApi:
    """Movement endpoints."""

    def test_record_and_reject(self, client, almacenero_user, tela, auth_headers):
        headers = auth_headers(almacenero_user)

        entrada = client.post(
            "/movimientos/",
            json={"material_id": tela.id, "tipo": "entrada", "cantidad": "50"},
            headers=headers,
        )
        assert entrada.status_code == 201
        assert entrada.json()["codigo_material"] == "TEL-001"
        assert float(entrada.json()["stock_resultante"]) == 200
        assert entrada.json()["fecha"].endswith(("Z", "+00:00"))

        rechazo = client.post(
            "/movimientos/",
            json={"material_id": tela.id, "tipo": "salida", "cantidad": "220"},
            headers=headers,
        )
        assert rechazo.status_code == 422
        assert rechazo.json()["error_code"] == "INSUFFICIENT_STOCK"
        assert rechazo.json()["data"]["available"] == "200.000"
        assert rechazo.json()["data"]["requested"] == "220.000"

        listado = client.get("/movimientos/", headers=headers)
        assert listado.json()["total"] == 1

    def test_invalid_tipo_is_a_validation_error(self, client, almacenero_user, tela, auth_headers):
        response = client.post(
            "/movimientos/",
            json={"material_id": tela.id, "tipo": "ajuste", "cantidad": "5"},
            headers=auth_headers(almacenero_user),
        )
        assert response.status_code == 422

    def test_zero_cantidad(self, client, almacenero_user, tela, auth_headers):
        response = client.post(
            "/movimientos/",
            json={"material_id": tela.id, "tipo": "entrada", "cantidad": "0"},
            headers=auth_headers(almacenero_user),
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "INVALID_INPUT"

    def test_viewer_cannot_record(self, client, produccion_user, tela, auth_headers):
        response = client.post(
            "/movimientos/",
            json={"material_id": tela.id, "tipo": "entrada", "cantidad": "5"},
            headers=auth_headers(produccion_user),
        )
        assert response.status_code == 403

    def test_date_filters(self, client, almacenero_user, tela, auth_headers):
        headers = auth_headers(almacenero_user)
        client.post(
            "/movimientos/",
            json={"material_id": tela.id, "tipo": "entrada", "cantidad": "1"},
            headers=headers,
        )

        futuro = client.get(
            "/movimientos/",
            params={"fecha_desde": "2999-01-01", "tz": "UTC"},
            headers=headers,
        )
        invertido = client.get(
            "/movimientos/",
            params={"fecha_desde": "2025-02-01", "fecha_hasta": "2025-01-01"},
            headers=headers,
        )

        assert futuro.json()["total"] == 0
        assert invertido.status_code == 400

    def test_get_missing_movement(self, client, produccion_user, auth_headers):
        response = client.get("/movimientos/321", headers=auth_headers(produccion_user))
        assert response.status_code == 404
        assert response.json()["error_code"] == "NOT_FOUND"


class TestReportsApi:
    """Report endpoints."""

    def test_resumen(self, client, produccion_user, tela, hilo, auth_headers):
        response = client.get(
            "/reportes/resumen", params={"tz": "UTC"}, headers=auth_headers(produccion_user)
        )

        assert response.status_code == 200
        assert response.json() == {
            "total_materiales": 2,
            "stock_bajo": 1,
            "usuarios_activos": 1,
            "movimientos_hoy": 0,
        }

    def test_stock_bajo(self, client, produccion_user, tela, hilo, auth_headers):
        response = client.get("/reportes/stock-bajo", headers=auth_headers(produccion_user))

        assert [item["codigo"] for item in response.json()] == ["HIL-002"]
        assert float(response.json()[0]["faltante"]) == 5

    def test_actividad_reciente(self, client, almacenero_user, tela, auth_headers):
        headers = auth_headers(almacenero_user)
        for cantidad in ("1", "2", "3"):
            client.post(
                "/movimientos/",
                json={"material_id": tela.id, "tipo": "entrada", "cantidad": cantidad},
                headers=headers,
            )

        response = client.get("/reportes/actividad-reciente", params={"limit": 2}, headers=headers)

        assert [float(m["cantidad"]) for m in response.json()] == [3, 2]


class TestUsersApi:
    """User administration endpoints."""

    def test_admin_creates_user(self, client, admin_user, auth_headers):
        response = client.post(
            "/usuarios/",
            json={
                "nombre": "Nuevo Almacenero",
                "email": "nuevo@josafat.com",
                "passwd": "clave-segura-2",
                "roles": ["almacenero"],
            },
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 201
        assert response.json()["roles"] == ["almacenero"]

    def test_non_admin_cannot_list(self, client, almacenero_user, auth_headers):
        response = client.get("/usuarios/", headers=auth_headers(almacenero_user))
        assert response.status_code == 403

    def test_update_roles_and_delete(self, client, admin_user, produccion_user, auth_headers):
        headers = auth_headers(admin_user)

        actualizado = client.patch(
            f"/usuarios/{produccion_user.id}",
            json={"roles": ["produccion", "almacenero"]},
            headers=headers,
        )
        assert actualizado.status_code == 200
        assert actualizado.json()["roles"] == ["almacenero", "produccion"]

        borrado = client.delete(f"/usuarios/{produccion_user.id}", headers=headers)
        assert borrado.status_code == 200
        assert client.get("/usuarios/", headers=headers).json()["total"] == 1


def test_root(client):
    assert client.get("/").json() == {"message": "API funcionando correctamente"}
