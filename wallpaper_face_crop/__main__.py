import sys

from wallpaper_face_crop.app import main

sys.exit(main())
