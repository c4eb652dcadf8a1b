import pytest

# Modules exercising the core analysis algorithms
BUSINESS_LOGIC_MODULES = (
    "test_overlap_sweep.py",
    "test_statistics.py",
    "test_binning.py",
    "test_shape.py",
)


def pytest_collection_modifyitems(items):
    """Apply unit marker to all tests in this directory."""
    for item in items:
        path = str(item.fspath)
        if "/unit/" not in path:
            continue
        item.add_marker(pytest.mark.unit)
        if path.endswith(BUSINESS_LOGIC_MODULES):
            item.add_marker(pytest.mark.business_logic)
