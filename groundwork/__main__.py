from .app.core import main

main()
