from keyvfs.keyvfs_cli import main

main()
