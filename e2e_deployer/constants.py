# /*
# Copyright 2026 The Grove Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Constants for gcloud firewall handling and k3k cluster defaults."""

from __future__ import annotations

import re

# -- Networking --
DEFAULT_NETWORK = "default"
FIREWALL_RULE_PREFIX = "e2e-ports-"
E2E_ALLOW = "tcp:22,tcp:80,tcp:8080,tcp:30000-32767,udp:30000-32767"

# gcloud may exit before deleted rules are really gone.
FIREWALL_SETTLE_SECONDS = 10

# -- Instance group URLs --
# Matches the tail of an instanceGroupUrls entry, e.g.
# .../zones/us-central1-a/instanceGroupManagers/gke-c1-default-pool-1a2b3c4d-grp
# Groups: zone, instance group name, 8 hex digit node pool hash.
POOL_RE = re.compile(r"zones/([^/]+)/instanceGroupManagers/(gk[e]-.*-([0-9a-f]{8})-grp)$")
INSTANCE_GROUP_URL_SEPARATOR = ";"

# -- CLIs --
GCLOUD = "gcloud"
KUBECTL = "kubectl"
K3KCLI = "k3kcli"

# -- k3k defaults --
DEFAULT_K3K_SERVERS = 1
DEFAULT_K3K_AGENTS = 0
DEFAULT_K3K_PERSISTENCE_TYPE = "ephemeral"
DEFAULT_K3K_MODE = "shared"
DEFAULT_K3K_VERSION = "v1.32.1"

K3K_UP_POLL_ATTEMPTS = 30
K3K_UP_POLL_INTERVAL_SECONDS = 10
