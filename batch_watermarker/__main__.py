from .cli.batch_process import main

if __name__ == "__main__":
    main()
