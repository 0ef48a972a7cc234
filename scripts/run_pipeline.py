import argparse
import json
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from gfrecipes.app.domain.errors import RecipePipelineError
from gfrecipes.app.domain.models import VersionKind
from gfrecipes.app.infra.db.memory_store import InMemoryRecordStore
from gfrecipes.app.infra.extraction.static_provider import StaticExtractionAdapter
from gfrecipes.app.services.recipe_pipeline import RecipePipeline
from gfrecipes.app.services.substitution_engine import SubstitutionEngine, get_catalog, load_catalog


def main() -> None:
    parser = argparse.ArgumentParser(description="Ingest and convert a recipe text file locally")
    parser.add_argument("text_file", nargs="?", help="Plain-text recipe; defaults to the sample OCR text")
    parser.add_argument("--user", default="local-user")
    parser.add_argument("--catalog", help="Path to a substitution catalog JSON file")
    parser.add_argument("--region", default="CA")
    args = parser.parse_args()

    extractor = StaticExtractionAdapter()
    reference = "sample"
    if args.text_file:
        path = pathlib.Path(args.text_file)
        extractor = StaticExtractionAdapter(path.read_text(encoding="utf-8"))
        reference = str(path)

    try:
        catalog = load_catalog(args.catalog) if args.catalog else get_catalog(args.region)
        pipeline = RecipePipeline(
            store=InMemoryRecordStore(),
            extractor=extractor,
            engine=SubstitutionEngine(catalog),
        )
        ingestion = pipeline.ingest(reference, args.user)
        conversion = pipeline.convert_recipe(ingestion.recipe_id)
    except RecipePipelineError as error:
        print(json.dumps(error.to_payload(), indent=2), file=sys.stderr)
        sys.exit(1)

    parsed = pipeline.versions.latest_version(ingestion.recipe_id, VersionKind.PARSED)
    converted = pipeline.versions.latest_version(ingestion.recipe_id, VersionKind.CONVERTED)
    print(json.dumps(
        {
            "recipeId": ingestion.recipe_id,
            "warnings": ingestion.warnings,
            "parsed": parsed.payload,
            "converted": converted.payload,
            "substitutions": [sub.to_record() for sub in conversion.substitutions],
        },
        indent=2,
        ensure_ascii=False,
    ))


if __name__ == "__main__":
    main()
