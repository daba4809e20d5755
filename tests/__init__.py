"""
Artiforge Test Suite
====================

Test organization mirrors the source code structure:
    tests/
    ├── test_core/           → artiforge.core (coordinates, config, models, errors)
    ├── test_infrastructure/ → artiforge.infrastructure (cache store, download cache)
    ├── test_integrations/   → artiforge.integrations (downloads, mappings, properties)
    ├── test_producers/      → artiforge.producers (steps, game, mod, vanilla)
    ├── test_orchestration/  → artiforge.orchestration (producer chain, session)
    ├── test_integration/    → End-to-end scenarios through the facade
    ├── helpers.py           → Archive and Maven-repository builders
    └── conftest.py          → Shared pytest fixtures

Running Tests:
    pytest                           # Run all tests
    pytest tests/test_orchestration/ # Run only orchestration tests
"""
