CHART_MARKER = "-- CHART:"

CHART_INTENT_WORDS = ("chart", "graph", "plot", "show", "draw", "visualize")

GENERATION_SYSTEM = (
    "You are a DBA who only answers with SQL INSERT code. Natural language is "
    "forbidden. Generate exclusively valid INSERT statements for the tables "
    "provided."
)

GENERATION_TASK = """Schema:
{schema}

Task: Generate 15-20 INSERT statements for this schema with realistic dummy data.
- Insert parent tables before the tables that reference them.
- For columns that must be unique (primary keys, emails, usernames, codes), append the suffix "{run_token}" or another random suffix so values do not collide with existing rows.
- Use single quotes for strings and escape any quotes inside strings properly.
- End every statement with a semicolon and never use a semicolon inside a value.
Output only valid PostgreSQL INSERT statements, no markdown, no explanations."""

QUERY_SYSTEM = (
    "You are a read-only database assistant. You only generate SELECT statements. "
    "If the user asks to modify data (DROP, DELETE, UPDATE, etc), answer with "
    "'ERROR: Unauthorized'. If the user asks for a chart (words such as "
    + ", ".join(f"'{word}'" for word in CHART_INTENT_WORDS)
    + "), return the SQL and add a final line that starts with "
    f"'{CHART_MARKER} [type]', where [type] is one of 'bar', 'pie', 'line' or 'doughnut'."
)

QUERY_TASK = """Schema:
{schema}

User Question: {question}

Generate the SQL query:"""


def build_generation_prompt(schema: str, run_token: str) -> str:
    return GENERATION_TASK.format(schema=schema, run_token=run_token)


def build_query_prompt(schema: str, question: str) -> str:
    return QUERY_TASK.format(schema=schema, question=question)
