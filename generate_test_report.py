from hrm_api.services.test_report import test_report_command

if __name__ == "__main__":
    test_report_command()
