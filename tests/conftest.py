import pytest
from pathlib import Path
import sys

# Add project root to path
sys.path.append(str(Path(__file__).parent.parent))

from docucast.app.config import AppConfig


PDF_BYTES = b"""%PDF-1.4
1 0 obj
<< /Type /Catalog /Pages 2 0 R >>
endobj
2 0 obj
<< /Type /Pages /Kids [] /Count 0 >>
endobj
xref
0 3
0000000000 65535 f
0000000009 00000 n
0000000052 00000 n
trailer
<< /Size 3 /Root 1 0 R >>
startxref
110
%%EOF
"""


@pytest.fixture
def sample_pdf(tmp_path):
    """Return path to a minimal valid PDF."""
    path = tmp_path / "doc.pdf"
    path.write_bytes(PDF_BYTES)
    return path


@pytest.fixture
def fast_config(tmp_path):
    """Config with credentials and near-zero polling delays."""
    return AppConfig(
        api_key="test-key",
        user_id="test-user",
        poll_interval=0.001,
        poll_timeout=1.0,
        max_poll_failures=5,
        backoff_base=0.0,
        backoff_max=0.0,
        tick_interval=0.01,
        cache_dir=tmp_path / "cache",
    )
