import io
import zipfile

import pytest
from httpx import AsyncClient

from app.core.errors import GeneratorError

GROUP_BY_CITY = (
    "SELECT city, COUNT(*) AS total FROM restaurants "
    "WHERE city IS NOT NULL GROUP BY city ORDER BY city;"
)


@pytest.mark.asyncio
async def test_home_page(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "/generate-data" in response.text


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


# =========================
# SCHEMA
# =========================
@pytest.mark.asyncio
async def test_upload_ddl(client: AsyncClient):
    """Uploaded DDL is applied and the new table is listed"""
    ddl = b"CREATE TABLE dishes (id INTEGER PRIMARY KEY, name TEXT NOT NULL)"
    response = await client.post(
        "/upload-ddl", files={"file": ("schema.sql", ddl, "application/sql")}
    )

    assert response.status_code == 200
    assert response.json() == {"message": "Schema applied successfully", "tables": ["dishes"]}

    schema = await client.get("/schema")
    assert schema.status_code == 200
    assert schema.json() == {
        "schema": "TABLE dishes (\n  id INTEGER,\n  name TEXT,\n)\n",
        "tables": ["dishes"],
    }


@pytest.mark.asyncio
async def test_upload_multi_statement_ddl(client: AsyncClient):
    ddl = b"CREATE TABLE a (id INTEGER);\nCREATE TABLE b (id INTEGER);\n"
    response = await client.post(
        "/upload-ddl", files={"file": ("schema.sql", ddl, "application/sql")}
    )

    assert response.status_code == 200
    assert response.json()["tables"] == ["a", "b"]


@pytest.mark.asyncio
async def test_upload_empty_file(client: AsyncClient):
    response = await client.post("/upload-ddl", files={"file": ("schema.sql", b"", "text/plain")})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_upload_invalid_ddl(client: AsyncClient):
    response = await client.post(
        "/upload-ddl", files={"file": ("schema.sql", b"CREATE TABL oops (id INT)", "text/plain")}
    )
    assert response.status_code == 500
    assert response.json()["detail"].startswith("Database error")


@pytest.mark.asyncio
async def test_list_tables_with_preview(client: AsyncClient, restaurants):
    response = await client.get("/list-tables")
    assert response.status_code == 200
    data = response.json()
    assert [t["name"] for t in data] == ["restaurants"]
    assert len(data[0]["data"]) == 4
    assert data[0]["data"][0] == {"id": 1, "name": "Chez Paul", "city": "Paris"}


# =========================
# GENERATION
# =========================
@pytest.mark.asyncio
async def test_generate_data(client: AsyncClient, restaurants, generator):
    generator.responses = [
        "```sql\nINSERT INTO restaurants (name, city) VALUES ('Trattoria', 'Rome');\n```"
    ]
    response = await client.post("/generate-data", json={"temperature": 0.7, "maxTokens": 800})

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Data generated successfully"
    assert data["table"] == "restaurants"
    assert {"id": 5, "name": "Trattoria", "city": "Rome"} in data["preview"]
    assert generator.calls[0]["temperature"] == 0.7
    assert generator.calls[0]["max_output_tokens"] == 800


@pytest.mark.asyncio
async def test_generate_data_without_tables(client: AsyncClient):
    response = await client.post("/generate-data", json={"temperature": 0.7, "maxTokens": 800})
    assert response.status_code == 400
    assert response.json()["detail"] == "No tables found in database"


@pytest.mark.asyncio
async def test_generate_data_rejects_out_of_range_parameters(client: AsyncClient, restaurants):
    response = await client.post("/generate-data", json={"temperature": 5, "maxTokens": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_generate_data_failed_batch(client: AsyncClient, restaurants, generator):
    generator.responses = [
        "INSERT INTO restaurants (name, city) VALUES ('Fresh', 'Oslo');"
        "INSERT INTO restaurants (name, city) VALUES ('Chez Paul', 'Paris');"
    ]
    response = await client.post("/generate-data", json={})

    assert response.status_code == 500
    assert "SQL: INSERT INTO restaurants (name, city) VALUES ('Chez Paul', 'Paris')" in (
        response.json()["detail"]
    )

    listing = await client.get("/list-tables")
    assert len(listing.json()[0]["data"]) == 4


@pytest.mark.asyncio
async def test_generate_data_generator_down(client: AsyncClient, restaurants, generator):
    generator.error = GeneratorError("Gemini error: quota exceeded")
    response = await client.post("/generate-data", json={})
    assert response.status_code == 502


# =========================
# QUERY
# =========================
@pytest.mark.asyncio
async def test_query_bar_chart(client: AsyncClient, restaurants, generator):
    generator.responses = [f"{GROUP_BY_CITY}\n-- CHART: bar"]
    response = await client.post(
        "/query", json={"prompt": "Show me restaurants grouped by city as a bar chart"}
    )

    assert response.status_code == 200
    assert response.json() == {
        "sql": f"{GROUP_BY_CITY}\n-- CHART: bar",
        "result": [{"city": "Lyon", "total": 1}, {"city": "Paris", "total": 2}],
        "isChart": True,
        "chartType": "bar",
    }


@pytest.mark.asyncio
async def test_query_without_chart(client: AsyncClient, restaurants, generator):
    generator.responses = ["SELECT name FROM restaurants WHERE city IS NULL"]
    response = await client.post("/query", json={"prompt": "Which restaurant has no city?"})

    assert response.status_code == 200
    data = response.json()
    assert data["isChart"] is False
    assert data["chartType"] is None
    assert data["result"] == [{"name": "Nowhere Diner"}]


@pytest.mark.asyncio
async def test_query_blocks_unsafe_sql(client: AsyncClient, restaurants, generator):
    generator.responses = ["DROP TABLE restaurants"]
    response = await client.post("/query", json={"prompt": "drop the restaurants table"})

    assert response.status_code == 403
    assert "Operation blocked" in response.json()["detail"]

    listing = await client.get("/list-tables")
    assert [t["name"] for t in listing.json()] == ["restaurants"]


@pytest.mark.asyncio
async def test_query_empty_prompt(client: AsyncClient, generator):
    response = await client.post("/query", json={"prompt": "   "})
    assert response.status_code == 400
    assert generator.calls == []


@pytest.mark.asyncio
async def test_query_execution_error(client: AsyncClient, restaurants, generator):
    generator.responses = ["SELECT stars FROM restaurants"]
    response = await client.post("/query", json={"prompt": "average stars"})
    assert response.status_code == 500
    assert "SQL: SELECT stars FROM restaurants" in response.json()["detail"]


# =========================
# EXPORT
# =========================
@pytest.mark.asyncio
async def test_download_csv(client: AsyncClient, restaurants):
    response = await client.get("/download-csv", params={"table": "restaurants"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert "filename=restaurants.csv" in response.headers["content-disposition"]
    lines = response.text.splitlines()
    assert lines[0] == "id,name,city"
    assert lines[-1] == "4,Nowhere Diner,"


@pytest.mark.asyncio
async def test_download_csv_defaults_to_first_table(client: AsyncClient, restaurants):
    response = await client.get("/download-csv")
    assert response.status_code == 200
    assert "filename=restaurants.csv" in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_download_csv_unknown_table(client: AsyncClient, restaurants):
    response = await client.get("/download-csv", params={"table": "restaurants; DROP TABLE x"})
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_download_csv_without_tables(client: AsyncClient):
    response = await client.get("/download-csv")
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_download_zip(client: AsyncClient, engine, restaurants):
    async with engine.begin() as conn:
        await conn.exec_driver_sql("CREATE TABLE dishes (id INTEGER, name TEXT)")

    response = await client.get("/download-zip")

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/zip"
    archive = zipfile.ZipFile(io.BytesIO(response.content))
    assert sorted(archive.namelist()) == ["dishes.csv", "restaurants.csv"]
    assert archive.read("dishes.csv").decode().splitlines() == ["id,name"]
