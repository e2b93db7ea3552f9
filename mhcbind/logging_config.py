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

import logging.config
import os

DEFAULT_LOG_PATH = "python.log"


def logging_conf_path():
    return os.path.join(os.path.dirname(os.path.abspath(__file__)), "logging.conf")


def configure_logging(log_path=DEFAULT_LOG_PATH):
    """
    Apply the logging configuration shipped with mhcbind: INFO and above
    to stderr, everything from mhcbind to `log_path`.
    """
    logging.config.fileConfig(
        logging_conf_path(),
        defaults={"logfilename": log_path},
        disable_existing_loggers=False)
