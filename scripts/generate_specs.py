#!/usr/bin/env python3
"""
Generate JSON Schemas, YAML variants, and OpenAPI from Pydantic models.

Outputs under src/specs/:
 - schemas/*.json (and *.yaml)
 - openapi.yaml and openapi.json
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

import yaml


ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
SPECS = SRC / "specs"
SCHEMAS_DIR = SPECS / "schemas"

sys.path.insert(0, str(ROOT))

from src.specs.models import SCHEMA_MODELS  # noqa: E402

_JSON = "application/json"


def write_json_yaml(obj: dict, json_path: Path) -> None:
    json_path.parent.mkdir(parents=True, exist_ok=True)
    with json_path.open("w", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, ensure_ascii=False)
    yaml_path = json_path.with_suffix(".yaml")
    with yaml_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(obj, f, sort_keys=False)


def generate_model_schemas() -> None:
    for filename, model in SCHEMA_MODELS.items():
        schema = model.model_json_schema()
        write_json_yaml(schema, SCHEMAS_DIR / filename)


def _component_name(filename: str) -> str:
    return SCHEMA_MODELS[filename].__name__


def _ref(filename: str) -> dict:
    return {"$ref": f"#/components/schemas/{_component_name(filename)}"}


def _body(filename: str) -> dict:
    return {"required": True, "content": {_JSON: {"schema": _ref(filename)}}}


def _response(description: str, filename: str) -> dict:
    return {"description": description, "content": {_JSON: {"schema": _ref(filename)}}}


def _query(name: str) -> dict:
    return {"in": "query", "name": name, "schema": {"type": "string"}, "required": True}


def build_openapi() -> dict:
    # Inline the model schemas as OpenAPI components
    components = {
        "schemas": {model.__name__: model.model_json_schema() for model in SCHEMA_MODELS.values()}
    }
    error = _response("Error", "error.response.schema.json")

    paths = {
        "/integrations/sync": {
            "post": {
                "summary": "Sync a portfolio's connected platforms",
                "operationId": "syncPortfolio",
                "requestBody": _body("sync.request.schema.json"),
                "responses": {
                    "200": _response("Per-platform sync results", "sync.response.schema.json"),
                    "400": error,
                    "404": error,
                },
            },
            "get": {
                "summary": "Last and next sync per integration",
                "operationId": "getSyncStatus",
                "parameters": [_query("portfolioId")],
                "responses": {
                    "200": _response("Sync status", "sync.status.response.schema.json"),
                    "404": error,
                },
            },
        },
        "/integrations/test": {
            "post": {
                "summary": "Check that a platform account is reachable",
                "operationId": "testIntegration",
                "requestBody": _body("integration.test.request.schema.json"),
                "responses": {
                    "200": _response("Connection test result", "integration.test.response.schema.json"),
                    "400": error,
                },
            }
        },
        "/plan/check-limitation": {
            "post": {
                "summary": "Ask whether the user's plan allows an action",
                "operationId": "checkLimitation",
                "requestBody": _body("plan.check.request.schema.json"),
                "responses": {
                    "200": _response("Quota decision", "plan.check.response.schema.json"),
                    "400": error,
                },
            },
            "get": {
                "summary": "Usage against every plan limit",
                "operationId": "getLimitationStatus",
                "parameters": [_query("userId")],
                "responses": {
                    "200": _response("Limitation status", "plan.status.response.schema.json"),
                },
            },
        },
        "/sync/initial": {
            "post": {
                "summary": "Start the durable initial import with enrichment",
                "operationId": "startInitialSync",
                "requestBody": _body("sync.request.schema.json"),
                "responses": {
                    "202": _response(
                        "Orchestration accepted; Durable Functions status endpoints returned",
                        "sync.initial.start.response.schema.json",
                    ),
                    "400": error,
                },
            }
        },
    }

    return {
        "openapi": "3.0.3",
        "info": {
            "title": "SmartPortfolio Sync Functions API",
            "version": "0.1.0",
            "description": "HTTP endpoints exposed by the SmartPortfolio sync Azure Functions app.",
        },
        "servers": [
            {"url": "http://localhost:7071/api", "description": "Local Functions host"}
        ],
        "paths": paths,
        "components": components,
    }


def generate_openapi() -> None:
    spec = build_openapi()
    write_json_yaml(spec, SPECS / "openapi.json")


def main() -> None:
    generate_model_schemas()
    generate_openapi()
    print("Specs generated under src/specs/")


if __name__ == "__main__":
    main()
