from fastapi import status

import models


# --- school owners ---

def test_school_owner_crud(test_client, db_session, factory):
    school = factory.school(name="Lycée Pasteur")
    other_school = factory.school(name="Lycée Curie")
    user = factory.user(first_name="Paula", last_name="Proviseur")

    created = test_client.post("/api/school-owners", json={"userId": user.id, "schoolId": school.id})
    owner_id = created.json()["id"]
    fetched = test_client.get(f"/api/school-owners/{owner_id}")
    listed = test_client.get("/api/school-owners", params={"schoolId": school.id})
    searched = test_client.get("/api/school-owners", params={"search": "Proviseur"})
    moved = test_client.put(f"/api/school-owners/{owner_id}", json={"schoolId": other_school.id})

    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["user"]["email"] == user.email
    assert created.json()["school"]["name"] == "Lycée Pasteur"
    assert fetched.json()["schoolId"] == school.id
    assert [o["id"] for o in listed.json()["items"]] == [owner_id]
    assert listed.json()["total"] == 1
    assert owner_id in [o["id"] for o in searched.json()["items"]]
    assert moved.json()["schoolId"] == other_school.id

    db_session.commit()
    assert db_session.get(models.User, user.id).type == "school_owner"

    deleted = test_client.delete(f"/api/school-owners/{owner_id}")
    assert deleted.json() == {"message": "Propriétaire d'école supprimé avec succès"}
    assert test_client.get(f"/api/school-owners/{owner_id}").status_code == status.HTTP_404_NOT_FOUND


def test_school_owner_link_is_exclusive(test_client, factory):
    owner = factory.school_owner()
    taken_school = owner.school_owner.school_id
    newcomer = factory.user()

    same_user = test_client.post("/api/school-owners", json={"userId": owner.id, "schoolId": factory.school().id})
    same_school = test_client.post("/api/school-owners", json={"userId": newcomer.id, "schoolId": taken_school})
    unknown = test_client.post("/api/school-owners", json={"userId": "ghost", "schoolId": taken_school})
    missing = test_client.post("/api/school-owners", json={})

    for response in (same_user, same_school):
        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()["details"][0]["field"] == "userId"
    assert unknown.status_code == status.HTTP_404_NOT_FOUND
    assert unknown.json()["error"] == "L'utilisateur ou l'école n'existe pas"
    assert {d["field"] for d in missing.json()["details"]} == {"userId", "schoolId"}


# --- company owners ---

def test_company_owner_crud(test_client, db_session, factory):
    company = factory.company_owner(company_name="Initech").company_owner.company
    other_company = factory.company_owner(company_name="Umbrella").company_owner.company
    user = factory.user(first_name="Bill", last_name="Lumbergh")

    created = test_client.post("/api/company-owners", json={"userId": user.id, "companyId": company.id})
    owner_id = created.json()["id"]
    listed = test_client.get("/api/company-owners", params={"companyId": company.id, "limit": 1})
    moved = test_client.put(f"/api/company-owners/{owner_id}", json={"companyId": other_company.id})

    assert created.status_code == status.HTTP_201_CREATED
    assert created.json()["company"] == {"id": company.id, "name": "Initech", "logo": None}
    assert created.json()["user"]["firstName"] == "Bill"
    assert listed.json()["total"] == 2
    assert listed.json()["totalPages"] == 2
    assert len(listed.json()["items"]) == 1
    assert moved.json()["company"]["name"] == "Umbrella"

    db_session.commit()
    assert db_session.get(models.User, user.id).type == "company_owner"

    deleted = test_client.delete(f"/api/company-owners/{owner_id}")
    assert deleted.json() == {"message": "Propriétaire d'entreprise supprimé avec succès"}
    assert test_client.get(f"/api/company-owners/{owner_id}").status_code == status.HTTP_404_NOT_FOUND


def test_company_owner_validation(test_client, factory):
    owner = factory.company_owner()
    company_id = owner.company_owner.company_id

    duplicate = test_client.post("/api/company-owners", json={"userId": owner.id, "companyId": company_id})
    unknown = test_client.post("/api/company-owners", json={"userId": factory.user().id, "companyId": "ghost"})
    bad_update = test_client.put(f"/api/company-owners/{owner.company_owner.id}", json={"companyId": "ghost"})

    assert duplicate.status_code == status.HTTP_400_BAD_REQUEST
    assert duplicate.json()["error"] == "Validation échouée"
    assert duplicate.json()["details"] == [
        {"field": "userId", "message": "Cet utilisateur est déjà propriétaire d'une entreprise"}
    ]
    assert unknown.json()["details"] == [{"field": "companyId", "message": "L'entreprise spécifiée n'existe pas"}]
    assert bad_update.status_code == status.HTTP_400_BAD_REQUEST
    assert test_client.get("/api/company-owners/unknown").status_code == status.HTTP_404_NOT_FOUND
