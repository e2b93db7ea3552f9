# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#       http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Pytest configuration for mhcbind tests.
"""

import os
import shutil

import pytest

from mhcbind.config import HOME_DIR_ENV


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "requires_netmhcpan: marks tests that require NetMHCpan"
    )
    config.addinivalue_line(
        "markers", "requires_smm_data: marks tests that require the SMM matrix files"
    )


def netmhcpan_available():
    """Check if NetMHCpan is available on the system."""
    return shutil.which("netMHCpan") is not None


def smm_data_dir():
    home_dir = os.environ.get(HOME_DIR_ENV)
    if not home_dir:
        return None
    return os.path.join(home_dir, "data")


def smm_data_available():
    data_dir = smm_data_dir()
    return data_dir is not None and os.path.exists(
        os.path.join(data_dir, "smm", "HLA-A-01:01-9.txt"))


# Skip condition for tests requiring NetMHCpan
requires_netmhcpan = pytest.mark.skipif(
    not netmhcpan_available(),
    reason="NetMHCpan not found in PATH"
)

# Skip condition for tests requiring the published SMM matrices
requires_smm_data = pytest.mark.skipif(
    not smm_data_available(),
    reason="SMM matrix files not found under $MHCBIND_HOME/data"
)


@pytest.fixture
def cache_dir(tmp_path):
    path = tmp_path / "cache"
    path.mkdir()
    return str(path)
