from check_package_json import main

if __name__ == "__main__":
    main()
