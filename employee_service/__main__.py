from employee_service.main import run

run()
