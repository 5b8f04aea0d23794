# Services package init
"""
Mom's Yums Backend - Services Layer
=====================================

What:  Business logic between the routes (HTTP) and the database.
How:   Services are built once in create_app() with the Settings object
       and handed to routes through app/dependencies.py.

Service Inventory:
    Extraction pipeline
    - ExtractionService:     ordered strategies, merge, escalation (extraction_service.py)
    - VisionBackend (ABC):   timeout + retry wrapper for providers (vision_base.py)
    - OpenAIVisionBackend:   GPT-4 Vision, primary (openai_vision.py)
    - GeminiVisionBackend:   Gemini, alternative primary (gemini_vision.py)
    - GoogleVisionBackend:   Cloud Vision OCR, secondary (google_vision.py)
    - preprocessing:         Pillow crop/contrast profiles and image validation
    - recipe_parser:         reply/OCR text → RecipeFields
    - recipe_fields:         the title/ingredients/instructions value type

    Recipe store
    - RecipeService:         CRUD, search, sharing, categories
    - FileService:           recipe photo validation, storage, cleanup
"""
