"""kryten-armcoin — Chat-command coin bot for live-stream channels."""
from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("kryten-armcoin")
except PackageNotFoundError:
    __version__ = "0.0.0"
