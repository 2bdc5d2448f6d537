"""Allow ``python -m wallpaperverse.cli`` execution."""

from wallpaperverse.cli.gallery import main

main()
