# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

import genro_pamauth


def test_version() -> None:
    """Test that version is defined."""
    assert genro_pamauth.__version__ == "0.1.0"


def test_exports() -> None:
    """Test that main exports are available."""
    assert hasattr(genro_pamauth, "PamAuthMiddleware")
    assert hasattr(genro_pamauth, "GateConfig")
    assert hasattr(genro_pamauth, "PamBackend")
    assert hasattr(genro_pamauth, "ServerLifespan")


def test_all_names_resolve() -> None:
    """Every name in __all__ is importable from the package."""
    for name in genro_pamauth.__all__:
        assert hasattr(genro_pamauth, name), name
