from index_upgrade import main

main()
